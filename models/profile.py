"""Public profile attached to every user."""

from datetime import datetime

from . import db


def email_name_for(email: str) -> str:
    """Derive the fallback display name from an email address."""

    return (email or "").split("@", 1)[0]


class Profile(db.Model):
    """Display details shown next to ads, applications and messages."""

    __tablename__ = "profiles"

    id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    username = db.Column(db.String(80), nullable=True)
    email_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    municipality = db.Column(db.String(120), nullable=True)
    avatar_url = db.Column(db.String(512), nullable=True)
    updated_at = db.Column(
        db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user = db.relationship("User", back_populates="profile")

    @property
    def display_name(self) -> str:
        return self.username or self.email_name or "Unknown User"

    def to_dict(self) -> dict:
        """Serialize the profile for public display."""

        return {
            "id": self.id,
            "username": self.username,
            "email_name": self.email_name,
            "display_name": self.display_name,
            "description": self.description,
            "municipality": self.municipality,
            "avatar_url": self.avatar_url,
        }
