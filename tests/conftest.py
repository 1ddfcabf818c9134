"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient
from flask_jwt_extended import create_access_token

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.ad import Ad  # noqa: E402
from models.profile import Profile, email_name_for  # noqa: E402
from models.user import User  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key-with-enough-length-for-hmac"
    JWT_SECRET_KEY = SECRET_KEY
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    RATE_LIMIT = "1000 per minute"
    STREAM_HEARTBEAT_SECONDS = 0.05


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance for tests."""

    upload_dir = tmp_path / "uploads"

    class TestConfig(_BaseTestConfig):
        UPLOAD_DIR = str(upload_dir)

    application = create_app(TestConfig)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def create_user(app: Flask):
    """Return a factory that persists a user with a profile and returns its id."""

    def _create(email: str, password: str = "Password123", username: str | None = None) -> int:
        with app.app_context():
            user = User(email=email)
            user.set_password(password)
            user.profile = Profile(username=username, email_name=email_name_for(email))
            db.session.add(user)
            db.session.commit()
            return user.id

    return _create


@pytest.fixture()
def create_ad(app: Flask):
    """Return a factory that persists an ad for the given owner and returns its id."""

    def _create(user_id: int, title: str = "Hjälp med flytt", **fields) -> int:
        values = {
            "description": "Två personer behövs en lördag.",
            "region": "Stockholm",
        }
        values.update(fields)
        with app.app_context():
            ad = Ad(user_id=user_id, title=title, **values)
            db.session.add(ad)
            db.session.commit()
            return ad.id

    return _create


@pytest.fixture()
def auth_header(app: Flask):
    """Return a factory building bearer headers for a user id."""

    def _header(user_id: int) -> dict[str, str]:
        with app.app_context():
            token = create_access_token(identity=str(user_id))
        return {"Authorization": f"Bearer {token}"}

    return _header
