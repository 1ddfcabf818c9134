"""In-process change feed for committed inserts.

Subscribers register interest in a table plus an equality filter and receive
each matching change on their own queue. Inserts of tracked models are
collected when the session flushes and published only once the transaction
commits, so rolled back rows never reach a subscriber.

Delivery is best effort: there is no replay for late subscribers and no
reconciliation if a consumer falls behind.
"""

from __future__ import annotations

import json
import queue
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from flask import current_app, has_app_context
from sqlalchemy import event
from sqlalchemy.orm import Session

INSERT = "INSERT"
UPDATE = "UPDATE"

_PENDING_KEY = "change_feed_pending"
_READY_KEY = "change_feed_ready"


@dataclass(frozen=True)
class Change:
    table: str
    event: str
    record: dict


@dataclass(eq=False)
class Subscription:
    """A queue of changes for one table and filter."""

    table: str
    filters: dict
    feed: "ChangeFeed"
    maxsize: int = 1000
    _queue: queue.Queue = field(init=False)

    def __post_init__(self) -> None:
        self._queue = queue.Queue(maxsize=self.maxsize)

    def matches(self, table: str, record: dict) -> bool:
        if table != self.table:
            return False
        return all(record.get(key) == value for key, value in self.filters.items())

    def deliver(self, change: Change) -> None:
        try:
            self._queue.put_nowait(change)
        except queue.Full:
            current = self.feed.logger()
            if current is not None:
                current.warning("Dropping %s change for slow subscriber", change.table)

    def get(self, timeout: float | None = None) -> Change:
        """Block for the next change; raises ``queue.Empty`` on timeout."""

        return self._queue.get(timeout=timeout)

    def close(self) -> None:
        self.feed.unsubscribe(self)


class ChangeFeed:
    """Fan out committed changes to matching subscribers."""

    def __init__(self, app=None):
        self._subscriptions: list[Subscription] = []
        self._lock = threading.Lock()
        self._logger = None
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["change_feed"] = self
        self._logger = app.logger

    def logger(self):
        return self._logger

    def subscribe(self, table: str, **filters: Any) -> Subscription:
        subscription = Subscription(table=table, filters=filters, feed=self)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def subscriber_count(self, table: str | None = None) -> int:
        with self._lock:
            if table is None:
                return len(self._subscriptions)
            return sum(1 for sub in self._subscriptions if sub.table == table)

    def publish(self, table: str, record: dict, event: str = INSERT) -> int:
        """Deliver a change to every matching subscriber and return how many."""

        change = Change(table=table, event=event, record=record)
        with self._lock:
            targets = [sub for sub in self._subscriptions if sub.matches(table, record)]
        for subscription in targets:
            subscription.deliver(change)
        return len(targets)


def current_feed() -> ChangeFeed:
    return current_app.extensions["change_feed"]


_tracked_models: tuple = ()


def track_inserts(*models) -> None:
    """Publish committed inserts of ``models`` to the active app's change feed.

    Tracked models must serialize from their own columns in ``to_dict`` since
    records are captured while the flush is still in progress.
    """

    global _tracked_models
    _tracked_models = tuple(set(_tracked_models) | set(models))
    if not event.contains(Session, "before_flush", _collect_inserts):
        event.listen(Session, "before_flush", _collect_inserts)
        event.listen(Session, "after_flush_postexec", _capture_records)
        event.listen(Session, "after_commit", _publish_records)
        event.listen(Session, "after_soft_rollback", _discard_records)


def _collect_inserts(session, flush_context, instances):
    pending = session.info.setdefault(_PENDING_KEY, [])
    pending.extend(obj for obj in session.new if isinstance(obj, _tracked_models))


def _capture_records(session, flush_context):
    # Primary keys and column defaults are populated once the flush has run.
    pending = session.info.pop(_PENDING_KEY, [])
    if pending:
        ready = session.info.setdefault(_READY_KEY, [])
        ready.extend((obj.__tablename__, obj.to_dict()) for obj in pending)


def _publish_records(session):
    ready = session.info.pop(_READY_KEY, [])
    if not ready or not has_app_context():
        return
    feed = current_app.extensions.get("change_feed")
    if feed is None:
        return
    for table, record in ready:
        feed.publish(table, record, INSERT)


def _discard_records(session, previous_transaction):
    session.info.pop(_PENDING_KEY, None)
    session.info.pop(_READY_KEY, None)


def event_stream(
    subscription: Subscription,
    *,
    heartbeat: float = 15.0,
    accept: Callable[[dict], bool] | None = None,
    transform: Callable[[dict], dict] | None = None,
) -> Iterator[str]:
    """Render a subscription as a Server-Sent Events stream."""

    try:
        yield "retry: 3000\n\n"
        while True:
            try:
                change = subscription.get(timeout=heartbeat)
            except queue.Empty:
                yield ": keep-alive\n\n"
                continue
            if accept is not None and not accept(change.record):
                continue
            record = transform(change.record) if transform else change.record
            payload = json.dumps(record)
            yield f"event: {change.event.lower()}\ndata: {payload}\n\n"
    finally:
        subscription.close()
