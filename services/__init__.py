"""Enrollment and progress engine used by the API blueprints and scripts."""
