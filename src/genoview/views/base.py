"""Common behaviour of headless sibling views."""

from __future__ import annotations

import logging
from typing import Any

from ..constants import TOPIC_VIEW_SYNC
from ..state.bus import EventBus, SubscriptionHandle
from ..state.events import ViewSync
from ..state.store import CohortStore

logger = logging.getLogger(__name__)


class SiblingView:
    """A view that learns about shared state only through ``view-sync`` events.

    Views mutate shared state through the store's methods and never hold a
    reference to another view. ``revision`` counts re-renders.
    """

    name = "view"

    def __init__(self, bus: EventBus, store: CohortStore):
        self.bus = bus
        self.store = store
        self.sample_ids: frozenset[str] = store.selected_sample_ids
        self.feature_ids: frozenset[str] = store.selected_feature_ids
        self.filters: dict[str, dict[str, Any]] = store.filter_descriptions()
        self.revision = 0
        self._handles: list[SubscriptionHandle] = [
            bus.subscribe(TOPIC_VIEW_SYNC, self._on_sync, handler_id=f"{self.name}:{id(self):x}")
        ]

    def _on_sync(self, event: ViewSync) -> None:
        self.sample_ids = event.sample_ids
        self.feature_ids = event.feature_ids
        self.filters = dict(event.filters)
        self.revision += 1
        logger.debug("%s re-rendered (%s, revision %d)", self.name, event.cause, self.revision)

    def close(self) -> None:
        for handle in self._handles:
            self.bus.unsubscribe(handle)
        self._handles.clear()
