"""Database initialization and model exports."""

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .profile import Profile  # noqa: E402,F401
from .location import Location  # noqa: E402,F401
from .ad import Ad  # noqa: E402,F401
from .application import Application, InvalidTransition  # noqa: E402,F401
from .message import Message  # noqa: E402,F401

__all__ = [
    "db",
    "User",
    "Profile",
    "Location",
    "Ad",
    "Application",
    "InvalidTransition",
    "Message",
]
