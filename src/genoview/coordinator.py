"""Wiring between the Viewport, the CohortStore and sibling views."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .constants import (
    TOPIC_FILTERS_CHANGED,
    TOPIC_REGION_CHANGED,
    TOPIC_SELECTION_CHANGED,
    TOPIC_TRACK_LOADED,
    TOPIC_VIEW_SYNC,
)
from .core.features import Feature, MutationFeature, TrackKind, feature_record
from .core.region import GenomicRegion
from .errors import GenoviewError
from .state.bus import EventBus, SubscriptionHandle
from .state.events import FiltersChanged, RegionChanged, SelectionChanged, TrackLoaded, ViewSync
from .state.store import CohortStore
from .tracks.base import FetchStatus
from .tracks.matrix import MatrixTrack
from .viewport import Viewport

logger = logging.getLogger(__name__)

SelectionCallback = Callable[[SelectionChanged], None]

# Track kinds whose datasets define the valid sample ids
SAMPLE_TRACK_KINDS = frozenset({TrackKind.MUTATION, TrackKind.MATRIX})


class Coordinator:
    """Keeps the viewport and sibling views consistent with the store.

    - ``region-changed`` moves the viewport, which refetches every track.
    - ``selection-changed`` and ``filters-changed`` are re-published as
      ``view-sync`` and pushed into track highlight and filter state.
    - Viewport navigation is routed through ``CohortStore.set_region``.
    - Once no track is loading, selected ids absent from the loaded data
      are pruned.
    """

    def __init__(
        self,
        store: CohortStore,
        viewport: Viewport,
        bus: EventBus,
        *,
        on_selection_change: SelectionCallback | None = None,
    ):
        self.store = store
        self.viewport = viewport
        self.bus = bus
        self.on_selection_change = on_selection_change
        self._handles: list[SubscriptionHandle] = [
            bus.subscribe(TOPIC_REGION_CHANGED, self._on_region_changed, handler_id="coordinator:region"),
            bus.subscribe(TOPIC_SELECTION_CHANGED, self._on_selection_changed, handler_id="coordinator:selection"),
            bus.subscribe(TOPIC_FILTERS_CHANGED, self._on_filters_changed, handler_id="coordinator:filters"),
            bus.subscribe(TOPIC_TRACK_LOADED, self._on_track_loaded, handler_id="coordinator:tracks"),
        ]
        viewport.navigator = self._navigate
        self._closed = False

    def _navigate(self, region: GenomicRegion) -> bool:
        return self.store.set_region(region, source="viewport")

    # -- Handlers ------------------------------------------------------------

    def _on_region_changed(self, event: RegionChanged) -> None:
        try:
            if event.region != self.viewport.region:
                self.viewport.set_region(event.region)
            elif any(t.status == FetchStatus.IDLE for t in self.viewport.tracks):
                self.viewport.refresh()
        except GenoviewError as e:
            logger.warning("Viewport rejected region %s: %s", event.region, e)

    def _on_selection_changed(self, event: SelectionChanged) -> None:
        for track in self.viewport.tracks:
            if isinstance(track, MatrixTrack):
                track.highlighted = event.sample_ids
        self.bus.publish(
            TOPIC_VIEW_SYNC,
            ViewSync(
                cause=TOPIC_SELECTION_CHANGED,
                sample_ids=event.sample_ids,
                feature_ids=event.feature_ids,
                filters=self.store.filter_descriptions(),
            ),
        )
        if self.on_selection_change is not None:
            self.on_selection_change(event)

    def _on_filters_changed(self, event: FiltersChanged) -> None:
        predicate = self._passes if self.store.filters else None
        for track in self.viewport.tracks:
            track.filter = predicate
        self.bus.publish(
            TOPIC_VIEW_SYNC,
            ViewSync(
                cause=TOPIC_FILTERS_CHANGED,
                sample_ids=self.store.selected_sample_ids,
                feature_ids=self.store.selected_feature_ids,
                filters=event.filters,
            ),
        )

    def _passes(self, feature: Feature) -> bool:
        return self.store.passes(feature_record(feature))

    def _on_track_loaded(self, event: TrackLoaded) -> None:
        tracks = self.viewport.tracks
        if any(t.status == FetchStatus.LOADING for t in tracks):
            return
        ready = [t for t in tracks if t.status == FetchStatus.READY]
        if not ready:
            return

        sample_tracks = [t for t in ready if t.kind in SAMPLE_TRACK_KINDS]
        if sample_tracks:
            valid_samples: set[str] = set().union(*(t.sample_ids() for t in sample_tracks))
        else:
            valid_samples = set(self.store.selected_sample_ids)
        valid_features: set[str] = set().union(*(t.feature_ids() for t in ready))
        logger.debug(
            "Dataset settled after %s: %d samples, %d features",
            event.track_id,
            len(valid_samples),
            len(valid_features),
        )
        self.store.apply_prune(valid_samples, valid_features, source="coordinator")

    # -- Interaction ---------------------------------------------------------

    def select_at(self, px: float, py: float, *, mode: str = "replace") -> str | None:
        """Click the viewport and select whatever feature is hit.

        Mutation clusters are expanded rather than selected. Selecting a
        mutation also selects its sample.

        Returns:
            The hit feature id, or None.
        """
        hit = self.viewport.click(px, py)
        if hit is None:
            return None
        track_id, feature_id = hit
        if feature_id.startswith("cluster:"):
            return feature_id

        feature = next((f for f in self.viewport.get_track(track_id).features if f.id == feature_id), None)
        samples = [feature.sample_id] if isinstance(feature, MutationFeature) and feature.sample_id else []
        self.store.update_selection(samples, [feature_id], mode, source="viewport")
        return feature_id

    def close(self) -> None:
        """Unsubscribe every handler this coordinator registered."""
        if self._closed:
            return
        for handle in self._handles:
            self.bus.unsubscribe(handle)
        self._handles.clear()
        if self.viewport.navigator == self._navigate:
            self.viewport.navigator = None
        self._closed = True
