"""Notification badge aggregation.

The badge shown to a user is the number of pending applications on their ads
plus the number of unread messages addressed to them. The value is always
recomputable from the database; the in-process cache only exists so views
that already know a count changed can adjust it without another round trip.
Every change is published on the ``notifications`` channel of the change feed.
"""

from __future__ import annotations

import threading

from flask import current_app

from models import db
from models.application import PENDING, Application
from models.message import Message

from .change_feed import UPDATE, ChangeFeed

CHANNEL = "notifications"


def pending_application_count(user_id: int) -> int:
    return (
        db.session.query(db.func.count(Application.id))
        .filter(Application.poster_id == user_id, Application.status == PENDING)
        .scalar()
        or 0
    )


def unread_message_count(user_id: int) -> int:
    return (
        db.session.query(db.func.count(Message.id))
        .filter(Message.receiver_id == user_id, Message.read_status.is_(False))
        .scalar()
        or 0
    )


class NotificationBadge:
    """Per-user badge counts with local optimistic adjustments."""

    def __init__(self, feed: ChangeFeed | None = None, app=None):
        self.feed = feed
        self._counts: dict[int, int] = {}
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["notification_badge"] = self

    def breakdown(self, user_id: int) -> dict:
        """Recompute the badge from source tables and return its parts."""

        pending = pending_application_count(user_id)
        unread = unread_message_count(user_id)
        count = self.set(user_id, pending + unread)
        return {
            "count": count,
            "pending_applications": pending,
            "unread_messages": unread,
        }

    def refresh(self, user_id: int) -> int:
        return self.breakdown(user_id)["count"]

    def get(self, user_id: int) -> int:
        with self._lock:
            cached = self._counts.get(user_id)
        if cached is None:
            return self.refresh(user_id)
        return cached

    def set(self, user_id: int, count: int) -> int:
        count = max(0, int(count))
        with self._lock:
            self._counts[user_id] = count
        self._notify(user_id, count)
        return count

    def increment(self, user_id: int, amount: int = 1) -> int | None:
        return self._adjust(user_id, amount)

    def decrement(self, user_id: int, amount: int = 1) -> int | None:
        return self._adjust(user_id, -amount)

    def forget(self, user_id: int) -> None:
        with self._lock:
            self._counts.pop(user_id, None)

    def _adjust(self, user_id: int, delta: int) -> int | None:
        # Unknown users are left alone; their next read recomputes.
        with self._lock:
            if user_id not in self._counts:
                return None
            count = max(0, self._counts[user_id] + delta)
            self._counts[user_id] = count
        self._notify(user_id, count)
        return count

    def _notify(self, user_id: int, count: int) -> None:
        if self.feed is not None:
            self.feed.publish(CHANNEL, {"user_id": user_id, "count": count}, UPDATE)


def current_badge() -> NotificationBadge:
    return current_app.extensions["notification_badge"]
