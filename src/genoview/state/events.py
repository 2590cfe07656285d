"""Versioned payloads of the cross-visualization event contract.

Sibling visualizations are developed independently and depend on these
shapes; any change to a field requires bumping EVENT_SCHEMA_VERSION.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..constants import (
    EVENT_SCHEMA_VERSION,
    TOPIC_FILTERS_CHANGED,
    TOPIC_REGION_CHANGED,
    TOPIC_SELECTION_CHANGED,
    TOPIC_TRACK_LOADED,
    TOPIC_VIEW_SYNC,
)
from ..core.region import GenomicRegion

TOPICS = (
    TOPIC_REGION_CHANGED,
    TOPIC_SELECTION_CHANGED,
    TOPIC_FILTERS_CHANGED,
    TOPIC_VIEW_SYNC,
    TOPIC_TRACK_LOADED,
)


@dataclass(frozen=True)
class RegionChanged:
    region: GenomicRegion
    previous: GenomicRegion | None
    source: str = "store"
    version: int = EVENT_SCHEMA_VERSION


@dataclass(frozen=True)
class SelectionChanged:
    """Full selection sets, never a diff, so late subscribers can resynchronize."""

    sample_ids: frozenset[str]
    feature_ids: frozenset[str]
    source: str = "store"
    version: int = EVENT_SCHEMA_VERSION


@dataclass(frozen=True)
class FiltersChanged:
    filters: dict[str, dict[str, Any]] = field(default_factory=dict)
    source: str = "store"
    version: int = EVENT_SCHEMA_VERSION


@dataclass(frozen=True)
class ViewSync:
    """Echo of a selection or filter change for sibling views."""

    cause: str  # topic that triggered the sync
    sample_ids: frozenset[str]
    feature_ids: frozenset[str]
    filters: dict[str, dict[str, Any]] = field(default_factory=dict)
    source: str = "coordinator"
    version: int = EVENT_SCHEMA_VERSION


@dataclass(frozen=True)
class TrackLoaded:
    track_id: str
    request_id: int
    status: str
    feature_count: int
    error: str | None = None
    source: str = "viewport"
    version: int = EVENT_SCHEMA_VERSION
