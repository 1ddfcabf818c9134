"""Authentication blueprint providing register, login and session endpoints."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import create_access_token
from sqlalchemy import func
from werkzeug.exceptions import BadRequest, Conflict, Unauthorized

from models import db
from models.profile import Profile, email_name_for
from models.user import User
from services.notifications import current_badge
from utils.auth import require_user
from utils.request_validation import clean_text, parse_json_request

MIN_PASSWORD_LENGTH = 8

auth_bp = Blueprint("auth", __name__)


def _normalize_email(raw_email: str | None) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    return (raw_email or "").strip().lower()


def _user_payload(user: User) -> dict:
    payload = user.to_dict()
    payload["profile"] = user.profile.to_dict() if user.profile else None
    return payload


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Register a new user and create their profile."""
    payload = parse_json_request(request)
    email = _normalize_email(payload.get("email"))
    password = (payload.get("password") or "").strip()

    if not email or not password:
        raise BadRequest("Email and password are required.")
    if "@" not in email:
        raise BadRequest("Email address is not valid.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )

    # Case-insensitive unique check
    existing = User.query.filter(func.lower(User.email) == email).first()
    if existing is not None:
        raise Conflict("A user with that email already exists.")

    user = User(email=email)
    user.set_password(password)
    user.profile = Profile(
        username=clean_text(payload.get("username")),
        email_name=email_name_for(email),
    )

    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Registered user %s", user.id)

    return (
        jsonify({"message": "User registered successfully.", "user": _user_payload(user)}),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a user and return a JWT access token."""
    payload = parse_json_request(request)
    email = _normalize_email(payload.get("email"))
    password = (payload.get("password") or "").strip()

    if not email or not password:
        raise BadRequest("Email and password are required.")

    user = User.query.filter(func.lower(User.email) == email).first()
    if user is None or not user.is_active or not user.check_password(password):
        raise Unauthorized("Invalid email or password.")

    token = create_access_token(identity=str(user.id))
    # Signing in always recomputes the badge from the tables.
    notification_count = current_badge().refresh(user.id)

    return (
        jsonify(
            {
                "access_token": token,
                "user": _user_payload(user),
                "notification_count": notification_count,
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/session", methods=["GET"])
def session_info():
    """Return the signed-in user, or 401 when the token is missing or stale."""
    user = require_user()
    return jsonify({"user": _user_payload(user)})
