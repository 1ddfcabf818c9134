"""Tests covering registration, login and the session check."""

from __future__ import annotations

import pytest
from flask.testing import FlaskClient

from models import db
from models.profile import Profile
from models.user import User


def _register(client: FlaskClient, email: str, password: str = "Password123", **extra):
    return client.post("/auth/register", json={"email": email, "password": password, **extra})


def test_register_creates_user_and_profile(app, client: FlaskClient):
    response = _register(client, "Anna@Example.com", username="Anna")

    assert response.status_code == 201
    user = response.get_json()["user"]
    assert user["email"] == "anna@example.com"
    assert user["profile"]["username"] == "Anna"
    assert user["profile"]["email_name"] == "anna"

    with app.app_context():
        stored = User.query.filter_by(email="anna@example.com").one()
        assert stored.check_password("Password123")
        assert db.session.get(Profile, stored.id).display_name == "Anna"


def test_register_rejects_duplicate_email_case_insensitively(client: FlaskClient):
    assert _register(client, "dup@example.com").status_code == 201

    response = _register(client, "DUP@example.com")

    assert response.status_code == 409
    assert response.get_json()["error"] == "Conflict"


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "no-password@example.com"},
        {"password": "Password123"},
        {"email": "not-an-email", "password": "Password123"},
        {"email": "short@example.com", "password": "short"},
    ],
)
def test_register_validation(client: FlaskClient, payload):
    response = client.post("/auth/register", json=payload)

    assert response.status_code == 400


def test_login_returns_token_and_badge(client: FlaskClient):
    """Users should receive a JWT and their current badge when signing in."""

    _register(client, "erik@example.com", "Secret1234")

    response = client.post(
        "/auth/login",
        json={"email": "erik@example.com", "password": "Secret1234"},
    )

    assert response.status_code == 200
    data = response.get_json()
    assert "access_token" in data
    assert data["user"]["email"] == "erik@example.com"
    assert data["notification_count"] == 0


@pytest.mark.parametrize(
    "payload, status_code",
    [
        ({"email": "erik@example.com"}, 400),
        ({"password": "Secret1234"}, 400),
        ({"email": "erik@example.com", "password": "wrong-password"}, 401),
        ({"email": "nobody@example.com", "password": "Secret1234"}, 401),
    ],
)
def test_login_validation(client: FlaskClient, payload, status_code):
    """Login endpoint should validate request bodies and credentials."""

    _register(client, "erik@example.com", "Secret1234")

    response = client.post("/auth/login", json=payload)

    assert response.status_code == status_code


def test_session_requires_token(client: FlaskClient):
    response = client.get("/auth/session")

    assert response.status_code == 401
    payload = response.get_json()
    assert payload["error"] == "Unauthorized"
    assert payload["request_id"]


def test_session_returns_current_user(client: FlaskClient):
    _register(client, "me@example.com")
    token = client.post(
        "/auth/login", json={"email": "me@example.com", "password": "Password123"}
    ).get_json()["access_token"]

    response = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.get_json()["user"]["profile"]["display_name"] == "me"


def test_session_rejects_token_for_deleted_user(client: FlaskClient, auth_header):
    response = client.get("/auth/session", headers=auth_header(999))

    assert response.status_code == 401
