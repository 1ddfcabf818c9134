"""Realtime delivery and notification aggregation."""

from .change_feed import ChangeFeed, current_feed, event_stream, track_inserts
from .notifications import NotificationBadge, current_badge

__all__ = [
    "ChangeFeed",
    "NotificationBadge",
    "current_badge",
    "current_feed",
    "event_stream",
    "track_inserts",
]
