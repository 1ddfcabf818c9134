"""Tests for the in-process change feed and the thread stream."""

from __future__ import annotations

import json
import queue

import pytest

from models import db
from models.message import Message
from services.change_feed import ChangeFeed, event_stream


@pytest.fixture()
def application_ids(client, create_user, create_ad, auth_header):
    poster = create_user("poster@example.com", username="Anna")
    applicant = create_user("applicant@example.com", username="Erik")
    ad_id = create_ad(poster)
    application_id = client.post(
        f"/ads/{ad_id}/applications", headers=auth_header(applicant)
    ).get_json()["id"]
    return {"poster": poster, "applicant": applicant, "application": application_id}


def _message(ids, content, **flags):
    return Message(
        application_id=ids["application"],
        sender_id=ids["poster"],
        receiver_id=ids["applicant"],
        content=content,
        **flags,
    )


def test_publish_only_reaches_matching_subscribers():
    feed = ChangeFeed()
    wanted = feed.subscribe("messages", application_id=1)
    other = feed.subscribe("messages", application_id=2)

    delivered = feed.publish("messages", {"application_id": 1, "content": "hej"})

    assert delivered == 1
    assert wanted.get(timeout=0).record["content"] == "hej"
    with pytest.raises(queue.Empty):
        other.get(timeout=0)

    wanted.close()
    other.close()
    assert feed.subscriber_count() == 0


def test_committed_insert_is_published(app, application_ids):
    feed = app.extensions["change_feed"]
    subscription = feed.subscribe("messages", application_id=application_ids["application"])

    with app.app_context():
        db.session.add(_message(application_ids, "Välkommen"))
        db.session.commit()

    change = subscription.get(timeout=1)
    assert change.event == "INSERT"
    assert change.record["content"] == "Välkommen"
    assert change.record["id"] is not None
    assert change.record["read_status"] is False


def test_rolled_back_insert_is_not_published(app, application_ids):
    feed = app.extensions["change_feed"]
    subscription = feed.subscribe("messages", application_id=application_ids["application"])

    with app.app_context():
        db.session.add(_message(application_ids, "Ångrad"))
        db.session.flush()
        db.session.rollback()

        db.session.add(_message(application_ids, "Skickad"))
        db.session.commit()

    assert subscription.get(timeout=1).record["content"] == "Skickad"
    with pytest.raises(queue.Empty):
        subscription.get(timeout=0)


def test_event_stream_formats_and_filters():
    feed = ChangeFeed()
    subscription = feed.subscribe("messages")
    stream = event_stream(
        subscription,
        heartbeat=0.01,
        accept=lambda record: not record.get("hidden"),
        transform=lambda record: {**record, "seen": True},
    )

    assert next(stream) == "retry: 3000\n\n"
    assert next(stream) == ": keep-alive\n\n"

    feed.publish("messages", {"id": 1, "hidden": True})
    feed.publish("messages", {"id": 2})

    chunk = next(stream)
    assert chunk.startswith("event: insert\ndata: ")
    assert json.loads(chunk.split("data: ", 1)[1]) == {"id": 2, "seen": True}

    stream.close()
    assert feed.subscriber_count() == 0


def _next_event(chunks, limit=50):
    for _ in range(limit):
        chunk = next(chunks)
        if isinstance(chunk, bytes):
            chunk = chunk.decode()
        if chunk.startswith("event:"):
            return json.loads(chunk.split("data: ", 1)[1])
    raise AssertionError("no event received")


def test_thread_stream_hides_applicant_only_notices_from_poster(
    app, client, auth_header, application_ids
):
    feed = app.extensions["change_feed"]
    response = client.get(
        f"/applications/{application_ids['application']}/messages/stream",
        headers=auth_header(application_ids["poster"]),
    )
    assert response.status_code == 200
    assert response.mimetype == "text/event-stream"
    assert feed.subscriber_count("messages") == 1

    with app.app_context():
        db.session.add(
            _message(
                application_ids,
                "Endast för sökande",
                is_system_message=True,
                for_applicant_only=True,
            )
        )
        db.session.add(_message(application_ids, "Till båda"))
        db.session.commit()

    chunks = iter(response.response)
    event = _next_event(chunks)
    assert event["content"] == "Till båda"
    assert event["sender_username"] == "Anna"

    response.close()
    assert feed.subscriber_count("messages") == 0


def test_thread_stream_requires_participant(client, create_user, auth_header, application_ids):
    outsider = create_user("outsider@example.com")

    response = client.get(
        f"/applications/{application_ids['application']}/messages/stream",
        headers=auth_header(outsider),
    )

    assert response.status_code == 403
