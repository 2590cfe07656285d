"""Topic-based publish/subscribe channel between visualizations.

Dispatch is synchronous: ``publish`` returns only after every subscriber
of the topic has run. Within a topic, handlers run in subscription order;
no ordering holds across topics.

There is no re-entrancy guard. A handler that publishes to the topic it is
handling recurses immediately; callers must not republish unconditionally.
"""

from __future__ import annotations

import itertools
import logging
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..constants import EVENT_HISTORY_SIZE

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Returned by ``subscribe``; pass it to ``unsubscribe`` on teardown."""

    topic: str
    handler_id: str


@dataclass(frozen=True)
class EventRecord:
    topic: str
    payload: Any
    timestamp: float


class EventBus:
    """Synchronous, in-order fan-out of payloads to topic subscribers.

    A handler that raises is logged and skipped; the remaining subscribers
    of the same event still run.
    """

    def __init__(self, history_size: int = EVENT_HISTORY_SIZE):
        self._handlers: dict[str, dict[str, Handler]] = {}
        self._ids = itertools.count(1)
        self._history: deque[EventRecord] = deque(maxlen=history_size)

    def subscribe(self, topic: str, handler: Handler, *, handler_id: str | None = None) -> SubscriptionHandle:
        """Register ``handler`` for ``topic``.

        Raises:
            ValueError: If ``handler_id`` is already subscribed to ``topic``.
        """
        handlers = self._handlers.setdefault(topic, {})
        handler_id = handler_id or f"h{next(self._ids)}"
        if handler_id in handlers:
            raise ValueError(f"Handler '{handler_id}' is already subscribed to '{topic}'")
        handlers[handler_id] = handler
        logger.debug("Subscribed %s to %s (%d listeners)", handler_id, topic, len(handlers))
        return SubscriptionHandle(topic=topic, handler_id=handler_id)

    def once(self, topic: str, handler: Handler) -> SubscriptionHandle:
        """Subscribe for a single delivery."""
        handle: SubscriptionHandle | None = None

        def _once(payload: Any) -> None:
            if handle is not None:
                self.unsubscribe(handle)
            handler(payload)

        handle = self.subscribe(topic, _once)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """Remove a subscription. Safe to call during dispatch and more than once.

        Returns:
            True if the subscription existed.
        """
        handlers = self._handlers.get(handle.topic)
        if not handlers or handle.handler_id not in handlers:
            return False
        del handlers[handle.handler_id]
        if not handlers:
            del self._handlers[handle.topic]
        logger.debug("Unsubscribed %s from %s", handle.handler_id, handle.topic)
        return True

    def publish(self, topic: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every current subscriber of ``topic``.

        The handler list is snapshotted when dispatch starts: handlers added
        during dispatch wait for the next publish, and handlers removed during
        dispatch are not invoked for this one.

        Returns:
            Number of handlers that ran without raising.
        """
        self._history.append(EventRecord(topic=topic, payload=payload, timestamp=time.time()))
        handlers = self._handlers.get(topic)
        if not handlers:
            logger.debug("Publish %s: no listeners", topic)
            return 0

        logger.debug("Publish %s to %d listeners", topic, len(handlers))
        delivered = 0
        for handler_id in list(handlers):
            live = self._handlers.get(topic, {})
            handler = live.get(handler_id)
            if handler is None:
                continue
            try:
                handler(payload)
            except Exception:
                logger.exception("Error in listener %s for %s", handler_id, topic)
                continue
            delivered += 1
        return delivered

    def listener_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, {}))

    def subscriptions(self) -> list[SubscriptionHandle]:
        """Every live subscription; anything left after teardown is a leak."""
        return [
            SubscriptionHandle(topic=topic, handler_id=handler_id)
            for topic, handlers in self._handlers.items()
            for handler_id in handlers
        ]

    def history(self) -> list[EventRecord]:
        return list(self._history)

    def clear(self) -> None:
        self._handlers.clear()
