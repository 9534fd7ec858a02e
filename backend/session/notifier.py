"""
Ordered synchronous broadcast of link notifications.

Subscribers are called in subscription order, on the caller's task, in
the order notifications are published. No buffering, no replay: a late
subscriber only sees what is published after it subscribed.
"""

from __future__ import annotations

import itertools
import time
from typing import Callable

from observability.logger import log_event
from orchestrator.notifications import Notification

Subscriber = Callable[[Notification], None]
Unsubscribe = Callable[[], None]


class EventNotifier:
    """Multi-subscriber fan-out for Connected / Error / Reconnecting / Disconnected."""

    def __init__(self, *, session_id: str | None = None) -> None:
        self._session_id = session_id
        self._subscribers: dict[int, Subscriber] = {}
        self._ids = itertools.count()

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        """
        Register a callback and return its unsubscribe handle.

        The handle is idempotent.
        """
        token = next(self._ids)
        self._subscribers[token] = callback

        def _unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return _unsubscribe

    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, notification: Notification) -> None:
        # Snapshot so callbacks may (un)subscribe during delivery
        for callback in list(self._subscribers.values()):
            try:
                callback(notification)
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": int(time.time() * 1000),
                    "event_type": "NOTIFIER_SUBSCRIBER_ERROR",
                    "session_id": self._session_id,
                    "notification": notification.kind.value,
                    "error": str(e),
                    "error_type": type(e).__name__,
                })
