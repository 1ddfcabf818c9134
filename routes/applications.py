"""Applications blueprint: decisions, acknowledgements and message threads."""

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest, Conflict, Forbidden

from models import db
from models.ad import Ad
from models.application import (
    ACCEPTED,
    PENDING,
    REJECTED,
    REJECTED_READ,
    Application,
    InvalidTransition,
    decision_note,
)
from models.message import Message
from models.user import User
from services.change_feed import current_feed, event_stream
from services.notifications import current_badge
from utils.auth import require_user
from utils.request_validation import clean_text, parse_int_arg, parse_json_request

applications_bp = Blueprint("applications", __name__)

MAX_MESSAGE_LENGTH = 5000


def _get_application_or_404(application_id: int) -> Application:
    return db.get_or_404(Application, application_id, description="Application not found.")


def _require_participant(application: Application, user: User) -> None:
    if not application.is_participant(user.id):
        raise Forbidden("You don't have permission to view these messages.")


def _participant_names(application: Application) -> dict[int, str]:
    return {
        application.applicant_id: application.applicant.display_name,
        application.poster_id: application.poster.display_name,
    }


def _serialize_message(record: dict, names: dict[int, str]) -> dict:
    payload = dict(record)
    payload["sender_username"] = names.get(record.get("sender_id"), "Unknown User")
    return payload


@applications_bp.route("", methods=["GET"])
def list_received_applications():
    """Applications on the caller's ads, optionally narrowed to one ad."""

    user = require_user()
    query = Application.query.filter(Application.poster_id == user.id)

    ad_id = parse_int_arg(request.args.get("ad"), "ad")
    ad = None
    if ad_id is not None:
        ad = db.get_or_404(Ad, ad_id, description="Ad not found.")
        if ad.user_id != user.id:
            raise Forbidden("Only the poster can view applications for this ad.")
        query = query.filter(Application.ad_id == ad_id)

    applications = query.order_by(
        Application.created_at.desc(), Application.id.desc()
    ).all()

    results = []
    for application in applications:
        payload = application.to_dict()
        payload["initial_message"] = application.initial_message
        results.append(payload)

    return jsonify(
        {
            "ad_title": ad.title if ad else None,
            "results": results,
            "count": len(results),
        }
    )


@applications_bp.route("/mine", methods=["GET"])
def list_my_applications():
    """Applications the caller has made, newest first."""

    user = require_user()
    applications = (
        Application.query.filter(Application.applicant_id == user.id)
        .order_by(Application.created_at.desc(), Application.id.desc())
        .all()
    )

    results = []
    for application in applications:
        payload = application.to_dict()
        payload["ad_region"] = application.ad.region if application.ad else ""
        payload["ad_municipality"] = (
            application.ad.municipality if application.ad else ""
        ) or ""
        results.append(payload)

    return jsonify({"results": results, "count": len(results)})


@applications_bp.route("/<int:application_id>", methods=["GET"])
def get_application(application_id: int):
    user = require_user()
    application = _get_application_or_404(application_id)
    _require_participant(application, user)

    payload = application.to_dict()
    payload["initial_message"] = application.initial_message
    return jsonify(payload)


def _decide(application_id: int, status: str):
    user = require_user()
    application = _get_application_or_404(application_id)
    if user.id != application.poster_id:
        raise Forbidden("Only the poster can accept or reject this application.")

    try:
        previous = application.transition_to(status)
    except InvalidTransition as exc:
        raise Conflict(str(exc))

    # Status change and applicant notice are written in one transaction.
    notice = Message(
        application_id=application.id,
        sender_id=application.poster_id,
        receiver_id=application.applicant_id,
        content=decision_note(status, application.ad.title),
        is_system_message=True,
        for_applicant_only=True,
        read_status=False,
    )
    db.session.add(notice)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.error(
            "Failed to record %s decision for application %s", status, application_id
        )
        raise

    current_app.logger.info(
        "Application %s moved from %s to %s by user %s",
        application.id,
        previous,
        status,
        user.id,
    )

    badge = current_badge()
    if previous == PENDING:
        badge.decrement(application.poster_id, 1)
    badge.increment(application.applicant_id, 1)

    return jsonify(application.to_dict())


@applications_bp.route("/<int:application_id>/accept", methods=["POST"])
def accept_application(application_id: int):
    return _decide(application_id, ACCEPTED)


@applications_bp.route("/<int:application_id>/reject", methods=["POST"])
def reject_application(application_id: int):
    return _decide(application_id, REJECTED)


@applications_bp.route("/<int:application_id>/acknowledge", methods=["POST"])
def acknowledge_rejection(application_id: int):
    """The applicant confirms they have seen a rejection."""

    user = require_user()
    application = _get_application_or_404(application_id)
    if user.id != application.applicant_id:
        raise Forbidden("Only the applicant can acknowledge this application.")

    try:
        application.transition_to(REJECTED_READ)
    except InvalidTransition as exc:
        raise Conflict(str(exc))

    db.session.commit()
    return jsonify(application.to_dict())


@applications_bp.route("/<int:application_id>/messages", methods=["GET"])
def list_messages(application_id: int):
    """Return the visible thread and mark the viewer's unread messages read."""

    user = require_user()
    application = _get_application_or_404(application_id)
    _require_participant(application, user)

    names = _participant_names(application)
    thread = Message.thread_query(application.id).all()

    unread_ids = [
        message.id
        for message in thread
        if message.receiver_id == user.id and not message.read_status
    ]

    messages = []
    for message in thread:
        record = message.to_dict()
        if not Message.visible_to(record, user.id, application.poster_id):
            continue
        if message.id in unread_ids:
            record["read_status"] = True
        messages.append(_serialize_message(record, names))

    badge = current_badge()
    notification_count = None
    if unread_ids:
        Message.query.filter(Message.id.in_(unread_ids)).update(
            {Message.read_status: True}, synchronize_session=False
        )
        db.session.commit()
        current_app.logger.info(
            "Marked %d messages read for user %s in application %s",
            len(unread_ids),
            user.id,
            application.id,
        )
        notification_count = badge.decrement(user.id, len(unread_ids))
    if notification_count is None:
        notification_count = badge.get(user.id)

    return jsonify(
        {
            "application": application.to_dict(),
            "messages": messages,
            "marked_read": len(unread_ids),
            "notification_count": notification_count,
            "can_send": application.status == ACCEPTED,
        }
    )


@applications_bp.route("/<int:application_id>/messages", methods=["POST"])
def send_message(application_id: int):
    user = require_user()
    application = _get_application_or_404(application_id)
    _require_participant(application, user)

    if application.status != ACCEPTED:
        raise Conflict(
            "You can only send messages once the application has been accepted."
        )

    data = parse_json_request(request)
    content = clean_text(data.get("content"))
    if content is None:
        raise BadRequest("content is required")
    if len(content) > MAX_MESSAGE_LENGTH:
        raise BadRequest(f"content must be at most {MAX_MESSAGE_LENGTH} characters")

    receiver_id = application.other_party(user.id)
    message = Message(
        application_id=application.id,
        sender_id=user.id,
        receiver_id=receiver_id,
        content=content,
        is_system_message=False,
        for_applicant_only=False,
        read_status=False,
    )
    db.session.add(message)
    db.session.commit()

    current_badge().increment(receiver_id, 1)
    return jsonify(_serialize_message(message.to_dict(), _participant_names(application))), 201


@applications_bp.route("/<int:application_id>/messages/stream", methods=["GET"])
def stream_messages(application_id: int):
    """Push newly inserted messages of this thread as Server-Sent Events."""

    user = require_user()
    application = _get_application_or_404(application_id)
    _require_participant(application, user)

    viewer_id = user.id
    poster_id = application.poster_id
    names = _participant_names(application)

    subscription = current_feed().subscribe("messages", application_id=application.id)
    stream = event_stream(
        subscription,
        heartbeat=current_app.config.get("STREAM_HEARTBEAT_SECONDS", 15.0),
        accept=lambda record: Message.visible_to(record, viewer_id, poster_id),
        transform=lambda record: _serialize_message(record, names),
    )
    return Response(
        stream,
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
