"""Tests for the Flask application factory."""
from __future__ import annotations

from app import create_app
from config import Config


def test_health_endpoint_returns_ok(client, tmp_path):
    """The health endpoint should respond with an OK payload and create uploads dir."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}
    # uploads dir is configured via TestConfig in conftest and created on app init
    assert (tmp_path / "uploads").is_dir()


def test_blueprints_registered(app):
    """Application factory should register expected blueprints."""
    bps = set(app.blueprints.keys())
    required = {
        "auth",
        "ads",
        "applications",
        "messages",
        "notifications",
        "profiles",
        "locations",
    }
    assert required.issubset(bps)


def test_realtime_extensions_are_per_app(app, tmp_path):
    """Each app gets its own change feed and notification badge."""

    class OtherConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
        UPLOAD_DIR = str(tmp_path / "other-uploads")

    other = create_app(OtherConfig)

    assert other.extensions["change_feed"] is not app.extensions["change_feed"]
    assert (
        other.extensions["notification_badge"]
        is not app.extensions["notification_badge"]
    )
    assert other.extensions["notification_badge"].feed is other.extensions["change_feed"]
