"""Notification badge endpoints."""

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify

from services.change_feed import current_feed, event_stream
from services.notifications import CHANNEL, current_badge
from utils.auth import require_user

notifications_bp = Blueprint("notifications", __name__)


@notifications_bp.route("/count", methods=["GET"])
def notification_count():
    """Recompute the caller's badge from the source tables."""

    user = require_user()
    return jsonify(current_badge().breakdown(user.id))


@notifications_bp.route("/stream", methods=["GET"])
def notification_stream():
    """Push badge changes for the caller as Server-Sent Events."""

    user = require_user()
    subscription = current_feed().subscribe(CHANNEL, user_id=user.id)
    stream = event_stream(
        subscription,
        heartbeat=current_app.config.get("STREAM_HEARTBEAT_SECONDS", 15.0),
    )
    return Response(
        stream,
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
