"""Resolve the signed-in user from the request's bearer token."""

from __future__ import annotations

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from werkzeug.exceptions import Unauthorized

from models import db
from models.user import User


def _load_identity() -> User | None:
    identity = get_jwt_identity()
    if identity is None:
        return None
    try:
        user_id = int(identity)
    except (TypeError, ValueError):
        return None
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def require_user() -> User:
    """Return the current user or raise 401."""

    verify_jwt_in_request()
    user = _load_identity()
    if user is None:
        raise Unauthorized("Sign in to continue.")
    return user


def optional_user() -> User | None:
    """Return the current user when a valid token was sent, else None."""

    verify_jwt_in_request(optional=True)
    return _load_identity()
