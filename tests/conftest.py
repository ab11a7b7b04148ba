"""
Pytest fixtures: a fresh in-memory database per test plus user factories.

Service tests run inside the app context pushed by ``app``; API tests use
``client`` and the ``login`` helper to obtain bearer headers.
"""

import itertools

import pytest

from app import create_app
from config import TestConfig
from models import db
from services import enrollment

DEFAULT_PASSWORD = "secret123"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_teacher(app):
    counter = itertools.count(1)

    def factory(email=None, password=DEFAULT_PASSWORD, name=None):
        email = email or f"teacher{next(counter)}@example.com"
        return enrollment.create_teacher(email, password, name)

    return factory


@pytest.fixture
def make_student(app):
    counter = itertools.count(1)

    def factory(teacher, email=None, password=DEFAULT_PASSWORD, name=None):
        email = email or f"student{next(counter)}@example.com"
        return enrollment.enroll(email, password, teacher.invite_code, name)

    return factory


@pytest.fixture
def login(client):
    def do_login(email, password=DEFAULT_PASSWORD):
        resp = client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert resp.status_code == 200, resp.get_json()
        token = resp.get_json()["data"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return do_login
