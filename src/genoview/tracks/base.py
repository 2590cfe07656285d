"""Track abstraction shared by every concrete track kind.

A track owns a private feature cache, fetches from its DataProvider whenever
the viewport changes, and renders as a pure function of its cache and the
current CoordinateSpace.

Fetches follow a last-viewport-wins rule: every request carries a
monotonically increasing id, and a response whose id is not the latest one
issued by the track is dropped. The same check guards results of worker
thread layout passes.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, ClassVar

from ..config import GenoviewConfig
from ..constants import TRACK_LABEL_HEIGHT
from ..core.coords import CoordinateSpace, Resolution
from ..core.features import Feature, TrackKind
from ..core.index import FeatureIndex
from ..core.region import GenomicRegion
from ..errors import FetchFailure
from ..providers.base import CancellationToken, DataProvider
from ..render.surface import Surface

logger = logging.getLogger(__name__)

FeaturePredicate = Callable[[Feature], bool]

# Feature count above which layout passes run in a worker thread
WORKER_OFFLOAD_MIN_FEATURES = 2_000


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class Track(ABC):
    """Base class for all track kinds."""

    kind: ClassVar[TrackKind]
    feature_types: ClassVar[tuple[type[Feature], ...]] = (Feature,)

    def __init__(
        self,
        id: str,
        provider: DataProvider,
        *,
        order: int = 0,
        height: int = 60,
        visible: bool = True,
        label: str | None = None,
        config: GenoviewConfig | None = None,
    ):
        self.id = id
        self.provider = provider
        self.order = order
        self.height = height
        self.visible = visible
        self.label = label or id
        self.config = config or GenoviewConfig()

        self.space: CoordinateSpace | None = None
        self.status = FetchStatus.IDLE
        self.error: FetchFailure | None = None
        self._derived: dict[str, tuple[Any, Any]] = {}
        self.filter: FeaturePredicate | None = None
        self.on_loaded: Callable[["Track"], None] | None = None

        self._latest_request_id = 0
        self._token: CancellationToken | None = None
        self._tasks: set[asyncio.Task] = set()
        self._index: FeatureIndex[Feature] = FeatureIndex([])
        self._layout: Any = None
        self._loaded_region: GenomicRegion | None = None
        self._loaded_resolution: Resolution | None = None
        self.applied_request_id = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, order={self.order}, status={self.status.value})"

    # -- Level of detail -----------------------------------------------------

    def resolution_for(self, space: CoordinateSpace) -> Resolution:
        """Resolution to request; kinds with a summary mode override this."""
        return space.resolution_for(float("inf"))

    def can_reuse(self, region: GenomicRegion, resolution: Resolution) -> bool:
        """Whether cached features already serve ``region`` at ``resolution``.

        Only kinds that can redraw from recomputed positions opt in.
        """
        return False

    def _cache_covers(self, region: GenomicRegion, resolution: Resolution) -> bool:
        return (
            self.status == FetchStatus.READY
            and self._loaded_region is not None
            and self._loaded_resolution is not None
            and self._loaded_region.covers(region)
            and self._loaded_resolution.aggregate == resolution.aggregate
        )

    # -- Fetch ---------------------------------------------------------------

    @property
    def latest_request_id(self) -> int:
        return self._latest_request_id

    @property
    def pending(self) -> bool:
        return bool(self._tasks)

    def set_viewport(self, space: CoordinateSpace) -> asyncio.Task | None:
        """Adopt a new coordinate space and fetch features for it.

        Must be called on the event loop thread. Returns the fetch task, or
        None when the cache already covers the new region.
        """
        self.space = space
        resolution = self.resolution_for(space)
        if self.can_reuse(space.region, resolution):
            logger.debug("Track %s reusing cached features for %s", self.id, space.region)
            return None

        self._latest_request_id += 1
        request_id = self._latest_request_id
        if self._token is not None:
            self._token.cancel()
        token = CancellationToken(request_id)
        self._token = token
        self.status = FetchStatus.LOADING

        task = asyncio.get_running_loop().create_task(
            self.fetch(space.region, resolution, request_id, token),
            name=f"fetch:{self.id}:{request_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _is_current(self, request_id: int, token: CancellationToken) -> bool:
        return not token.cancelled and request_id == self._latest_request_id

    async def fetch(
        self,
        region: GenomicRegion,
        resolution: Resolution,
        request_id: int,
        token: CancellationToken,
    ) -> bool:
        """Fetch, filter and apply features for one request.

        Returns:
            True if the response was applied, False if it was stale or failed.
        """
        if self._is_current(request_id, token):
            self.status = FetchStatus.LOADING
        try:
            raw = await asyncio.wait_for(
                self.provider.fetch(region, resolution, request_id, token),
                timeout=self.config.fetch_timeout,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._is_current(request_id, token):
                logger.debug("Track %s: ignoring failure of stale request %d", self.id, request_id)
                return False
            message = "timed out" if isinstance(e, asyncio.TimeoutError) else str(e) or type(e).__name__
            self.error = FetchFailure(self.id, message, e)
            self.status = FetchStatus.ERROR
            logger.warning("Track %s fetch %d failed for %s: %s", self.id, request_id, region, message)
            self._notify()
            return False

        if not self._is_current(request_id, token):
            logger.debug(
                "Track %s: discarding stale response %d (latest %d)",
                self.id,
                request_id,
                self._latest_request_id,
            )
            return False

        features = self._accept(raw, region)

        if len(features) >= WORKER_OFFLOAD_MIN_FEATURES:
            layout = await asyncio.to_thread(self.layout, features, region, resolution)
            if not self._is_current(request_id, token):
                logger.debug("Track %s: discarding stale layout %d", self.id, request_id)
                return False
        else:
            layout = self.layout(features, region, resolution)

        self._index = FeatureIndex(features)
        self._layout = layout
        self.invalidate_derived()
        self._loaded_region = region
        self._loaded_resolution = resolution
        self.applied_request_id = request_id
        self.error = None
        self.status = FetchStatus.READY
        logger.debug("Track %s applied %d features for %s", self.id, len(features), region)
        self._notify()
        return True

    def _accept(self, raw: Iterable[Feature], region: GenomicRegion) -> list[Feature]:
        """Drop features of the wrong kind or outside the requested region."""
        accepted: list[Feature] = []
        dropped = 0
        for feature in raw:
            if not isinstance(feature, self.feature_types):
                dropped += 1
                continue
            if not region.overlaps(feature.start, feature.end):
                dropped += 1
                continue
            accepted.append(feature)
        if dropped:
            logger.debug("Track %s dropped %d out-of-range or foreign features", self.id, dropped)
        return accepted

    def layout(self, features: list[Feature], region: GenomicRegion, resolution: Resolution) -> Any:
        """Precompute render state for fetched features; may run in a worker thread.

        Must be a pure function of its arguments.
        """
        return None

    def _notify(self) -> None:
        if self.on_loaded is not None:
            self.on_loaded(self)

    async def wait_idle(self) -> None:
        """Wait for every in-flight fetch issued by this track."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel outstanding requests; their responses will be dropped."""
        if self._token is not None:
            self._token.cancel()
        for task in list(self._tasks):
            task.cancel()

    # -- Features ------------------------------------------------------------

    @property
    def filter(self) -> FeaturePredicate | None:
        return self._filter

    @filter.setter
    def filter(self, predicate: FeaturePredicate | None) -> None:
        self._filter = predicate
        self.invalidate_derived()

    def invalidate_derived(self) -> None:
        """Forget render state derived from the loaded features, filter or space."""
        self._derived.clear()

    def _derived_value(self, name: str, space: CoordinateSpace, compute: Callable[[], Any], *extra: Any) -> Any:
        """``compute()``, cached until the space, the loaded data or the filter changes."""
        key = (space.region, space.pixel_width, *extra)
        cached = self._derived.get(name)
        if cached is not None and cached[0] == key:
            return cached[1]
        value = compute()
        self._derived[name] = (key, value)
        return value

    @property
    def features(self) -> list[Feature]:
        return list(self._index.features)

    def visible_features(self) -> list[Feature]:
        """Features inside the current region that pass the active filter."""
        if self.space is None:
            return []
        region = self.space.region
        found = self._index.overlapping(region.start, region.end)
        if self.filter is not None:
            found = [f for f in found if self.filter(f)]
        return found

    def feature_ids(self) -> set[str]:
        return {f.id for f in self._index.features}

    def sample_ids(self) -> set[str]:
        """Sample ids referenced by the loaded dataset (empty for sample-agnostic kinds)."""
        return set()

    # -- Rendering -----------------------------------------------------------

    @property
    def content_height(self) -> float:
        return self.height - TRACK_LABEL_HEIGHT

    def render(self, surface: Surface, y: float = 0.0) -> None:
        """Draw this track at vertical offset ``y``. Performs no I/O."""
        if not self.visible or self.space is None:
            return
        with surface.layer(self.id, y, self.height):
            surface.rect(0, 0, self.space.pixel_width, self.height, fill="#ffffff", stroke="#eeeeee")
            surface.text(5, 12, self.label, role="label", font_size=10)
            if self.status == FetchStatus.ERROR and self.error is not None:
                self._draw_error_banner(surface)
                return
            with surface.layer(self.id, y + TRACK_LABEL_HEIGHT, self.content_height):
                self.draw(surface, self.space)

    def _draw_error_banner(self, surface: Surface) -> None:
        assert self.space is not None and self.error is not None
        surface.rect(0, TRACK_LABEL_HEIGHT, self.space.pixel_width, 18, fill="#fdecea", role="error")
        surface.text(8, TRACK_LABEL_HEIGHT + 13, f"Failed to load: {self.error.message}", role="error")

    @abstractmethod
    def draw(self, surface: Surface, space: CoordinateSpace) -> None:
        """Kind-specific drawing in track-local content coordinates."""

    # -- Interaction ---------------------------------------------------------

    def hit_test(self, px: float, py: float) -> str | None:
        """Feature id under the track-local point ``(px, py)``, or None."""
        if not self.visible or self.space is None or self.status != FetchStatus.READY:
            return None
        local_y = py - TRACK_LABEL_HEIGHT
        if local_y < 0 or local_y > self.content_height:
            return None
        return self._hit(px, local_y, self.space)

    def _tolerance_bp(self, space: CoordinateSpace, px: float = 2.0) -> int:
        return int(round(space.bp_per_pixel * px))

    def _hit(self, px: float, py: float, space: CoordinateSpace) -> str | None:
        position = space.to_position(px)
        hit = self._index.nearest(position, self._tolerance_bp(space))
        if hit is None or (self.filter is not None and not self.filter(hit)):
            return None
        return hit.id
