"""Inbox overview of every conversation the user takes part in."""

from __future__ import annotations

from flask import Blueprint, jsonify
from sqlalchemy import or_

from models import db
from models.application import ACCEPTED, PENDING, Application
from models.message import Message
from utils.auth import require_user

messages_bp = Blueprint("messages", __name__)


def _conversation(application: Application, user_id: int) -> dict:
    payload = application.to_dict()
    other = (
        application.poster
        if application.other_party(user_id) == application.poster_id
        else application.applicant
    )
    payload["other_username"] = other.display_name
    payload["is_poster"] = application.poster_id == user_id

    last = (
        Message.visible_filter(
            Message.query.filter(Message.application_id == application.id),
            user_id,
            application.poster_id,
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
        .first()
    )
    if last is None:
        payload["last_message"] = None
        payload["last_message_at"] = None
    else:
        payload["last_message"] = {
            "content": last.content,
            "created_at": last.created_at.isoformat(),
            "sender_username": last.sender.display_name,
        }
        payload["last_message_at"] = payload["last_message"]["created_at"]

    payload["unread_count"] = (
        db.session.query(db.func.count(Message.id))
        .filter(
            Message.application_id == application.id,
            Message.receiver_id == user_id,
            Message.read_status.is_(False),
        )
        .scalar()
        or 0
    )
    return payload


@messages_bp.route("", methods=["GET"])
def inbox():
    """Pending applications first, then accepted ones by latest activity."""

    user = require_user()
    applications = Application.query.filter(
        or_(Application.applicant_id == user.id, Application.poster_id == user.id),
        Application.status.in_((PENDING, ACCEPTED)),
    ).all()

    conversations = [_conversation(application, user.id) for application in applications]

    pending = sorted(
        (c for c in conversations if c["status"] == PENDING),
        key=lambda c: (c["created_at"] or "", c["id"]),
        reverse=True,
    )
    accepted = [c for c in conversations if c["status"] == ACCEPTED]
    with_activity = sorted(
        (c for c in accepted if c["last_message_at"]),
        key=lambda c: (c["last_message_at"], c["id"]),
        reverse=True,
    )
    without_activity = [c for c in accepted if not c["last_message_at"]]

    results = pending + with_activity + without_activity
    return jsonify({"results": results, "count": len(results)})
