from flask import Blueprint

api_bp = Blueprint("api_v1", __name__, url_prefix="/api/v1")


def init_app(app):
    """Register all API blueprints."""
    # Route modules attach their views to api_bp on import.
    from api import auth, invite_codes, tasks  # noqa: F401

    app.register_blueprint(api_bp)
