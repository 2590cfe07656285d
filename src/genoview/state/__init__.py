"""Cross-visualization state: event bus, payloads and the cohort store."""

from .bus import EventBus, EventRecord, SubscriptionHandle
from .events import TOPICS, FiltersChanged, RegionChanged, SelectionChanged, TrackLoaded, ViewSync
from .store import (
    SELECTION_MODES,
    Cohort,
    CohortSnapshot,
    CohortStore,
    FilterPredicate,
    field_filter,
    filter_options,
    range_filter,
)

__all__ = [
    "SELECTION_MODES",
    "TOPICS",
    "Cohort",
    "CohortSnapshot",
    "CohortStore",
    "EventBus",
    "EventRecord",
    "FilterPredicate",
    "FiltersChanged",
    "RegionChanged",
    "SelectionChanged",
    "SubscriptionHandle",
    "TrackLoaded",
    "ViewSync",
    "field_filter",
    "filter_options",
    "range_filter",
]
