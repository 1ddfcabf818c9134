"""Tests for the notification badge."""

from __future__ import annotations

import queue

from services.change_feed import ChangeFeed
from services.notifications import CHANNEL, NotificationBadge


def test_count_requires_auth(client):
    assert client.get("/notifications/count").status_code == 401


def test_count_sums_pending_applications_and_unread_messages(
    client, create_user, create_ad, auth_header
):
    poster = create_user("poster@example.com")
    first = create_user("first@example.com")
    second = create_user("second@example.com")
    ad_id = create_ad(poster)

    for applicant in (first, second):
        client.post(f"/ads/{ad_id}/applications", headers=auth_header(applicant))

    response = client.get("/notifications/count", headers=auth_header(poster))

    assert response.status_code == 200
    assert response.get_json() == {
        "count": 4,
        "pending_applications": 2,
        "unread_messages": 2,
    }


def test_login_badge_follows_applications(client, create_user, create_ad, auth_header):
    poster = create_user("poster@example.com")
    applicant = create_user("applicant@example.com")
    ad_id = create_ad(poster)

    login = client.post(
        "/auth/login", json={"email": "poster@example.com", "password": "Password123"}
    )
    assert login.get_json()["notification_count"] == 0

    application_id = client.post(
        f"/ads/{ad_id}/applications", headers=auth_header(applicant)
    ).get_json()["id"]
    badge = client.application.extensions["notification_badge"]
    assert badge.get(poster) == 2

    client.post(f"/applications/{application_id}/reject", headers=auth_header(poster))
    assert badge.get(poster) == 1


def test_badge_adjustments_clamp_and_publish():
    feed = ChangeFeed()
    badge = NotificationBadge(feed)
    subscription = feed.subscribe(CHANNEL, user_id=7)

    assert badge.increment(7) is None

    badge.set(7, 1)
    assert badge.decrement(7, 5) == 0
    assert badge.increment(7, 3) == 3
    assert badge.get(7) == 3

    counts = []
    while True:
        try:
            counts.append(subscription.get(timeout=0).record["count"])
        except queue.Empty:
            break
    assert counts == [1, 0, 3]

    badge.forget(7)
    assert badge.increment(7) is None


def test_badge_is_isolated_per_user():
    badge = NotificationBadge()
    badge.set(1, 4)
    badge.set(2, 9)

    badge.decrement(1, 1)

    assert badge.get(1) == 3
    assert badge.get(2) == 9


def test_badge_stream_pushes_updates_for_caller_only(client, create_user, auth_header):
    user_id = create_user("anna@example.com")
    badge = client.application.extensions["notification_badge"]
    feed = client.application.extensions["change_feed"]

    response = client.get("/notifications/stream", headers=auth_header(user_id))
    assert response.status_code == 200
    assert feed.subscriber_count(CHANNEL) == 1

    badge.set(user_id + 1, 9)
    badge.set(user_id, 3)

    chunks = iter(response.response)
    for _ in range(50):
        chunk = next(chunks).decode()
        if chunk.startswith("event:"):
            break
    assert chunk.startswith("event: update\n")
    assert '"count": 3' in chunk

    response.close()
    assert feed.subscriber_count(CHANNEL) == 0
