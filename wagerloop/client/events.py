"""Session-scoped publish/subscribe channel shared by views."""
from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

FOLLOW_CHANGED = "follow.changed"
MEMBERSHIP_CHANGED = "community.membership_changed"
ENGAGEMENT_CHANGED = "post.engagement_changed"
REALTIME_SNAPSHOT = "realtime.snapshot"

Handler = Callable[[Any], None]


class EventBus:
    """Topic based fanout owned by one signed-in session.

    Handlers run synchronously in subscription order. A handler that raises is
    logged and skipped; the remaining handlers still receive the event. Once
    :meth:`close` has been called every publish is a no-op.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic`` and return a function that removes it."""

        if self._closed:
            logger.debug("Ignoring subscription to %s on a closed bus", topic)
            return lambda: None
        self._handlers.setdefault(topic, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    self._handlers.pop(topic, None)

        return unsubscribe

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))

    def publish(self, topic: str, payload: Any = None) -> int:
        """Deliver ``payload`` to the handlers of ``topic``; returns how many succeeded."""

        if self._closed:
            return 0
        delivered = 0
        for handler in list(self._handlers.get(topic, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler for %s failed", topic)
                continue
            delivered += 1
        return delivered

    def close(self) -> None:
        self._closed = True
        self._handlers.clear()


__all__ = [
    "EventBus",
    "FOLLOW_CHANGED",
    "MEMBERSHIP_CHANGED",
    "ENGAGEMENT_CHANGED",
    "REALTIME_SNAPSHOT",
]
