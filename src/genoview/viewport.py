"""Viewport: the shared coordinate space and the ordered tracks drawn against it."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .config import GenoviewConfig
from .constants import TOPIC_TRACK_LOADED
from .core.coords import CoordinateSpace
from .core.region import Genome, GenomicRegion, parse_region
from .render.surface import Surface
from .state.bus import EventBus
from .state.events import TrackLoaded
from .tracks.base import Track
from .tracks.mutation import MutationTrack

logger = logging.getLogger(__name__)

Navigator = Callable[[GenomicRegion], bool]


class Viewport:
    """Owns the current CoordinateSpace and an order-sorted list of tracks.

    Navigation methods compute the target region and hand it to
    ``navigator`` when one is installed (the Coordinator routes it through
    the CohortStore); otherwise the region is applied directly.
    """

    def __init__(
        self,
        space: CoordinateSpace,
        *,
        bus: EventBus | None = None,
        config: GenoviewConfig | None = None,
    ):
        self.space = space
        self.bus = bus
        self.config = config or GenoviewConfig()
        self.navigator: Navigator | None = None
        self._tracks: dict[str, Track] = {}

    @classmethod
    def create(
        cls,
        region: GenomicRegion | str,
        *,
        genome: Genome | str | None = None,
        pixel_width: int | None = None,
        bus: EventBus | None = None,
        config: GenoviewConfig | None = None,
    ) -> "Viewport":
        """Build a viewport from a region and the configured defaults.

        Raises:
            InvalidRegion: If the region is malformed or outside the genome.
        """
        config = config or GenoviewConfig()
        if genome is None:
            genome = config.genome
        if isinstance(genome, str):
            genome = Genome.named(genome)
        if isinstance(region, str):
            region = parse_region(region, genome)
        space = CoordinateSpace(
            region=region,
            pixel_width=pixel_width or config.pixel_width,
            genome=genome,
            min_span=config.min_span,
            strict=config.strict,
        )
        return cls(space, bus=bus, config=config)

    @property
    def region(self) -> GenomicRegion:
        return self.space.region

    # -- Tracks --------------------------------------------------------------

    @property
    def tracks(self) -> list[Track]:
        return sorted(self._tracks.values(), key=lambda t: t.order)

    def get_track(self, track_id: str) -> Track:
        try:
            return self._tracks[track_id]
        except KeyError:
            raise KeyError(f"No track '{track_id}'") from None

    def add_track(self, track: Track) -> Track:
        """Attach a track. Fetching starts on the next ``set_region``/``refresh``.

        Raises:
            ValueError: If the id or order is already taken.
        """
        if track.id in self._tracks:
            raise ValueError(f"Track id '{track.id}' already exists")
        if any(t.order == track.order for t in self._tracks.values()):
            raise ValueError(f"Track order {track.order} already used")
        track.space = self.space
        track.on_loaded = self._on_track_loaded
        self._tracks[track.id] = track
        return track

    def remove_track(self, track_id: str) -> Track:
        track = self.get_track(track_id)
        track.close()
        track.on_loaded = None
        del self._tracks[track_id]
        return track

    def _on_track_loaded(self, track: Track) -> None:
        if self.bus is None:
            return
        self.bus.publish(
            TOPIC_TRACK_LOADED,
            TrackLoaded(
                track_id=track.id,
                request_id=track.latest_request_id,
                status=track.status.value,
                feature_count=len(track.features),
                error=track.error.message if track.error else None,
            ),
        )

    # -- Space ---------------------------------------------------------------

    def _adopt(self, space: CoordinateSpace) -> list[asyncio.Task]:
        self.space = space
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; tracks adopt %s without fetching", space.region)
            for track in self._tracks.values():
                track.space = space
            return []

        tasks = []
        for track in self.tracks:
            task = track.set_viewport(space)
            if task is not None:
                tasks.append(task)
        return tasks

    def set_region(self, region: GenomicRegion) -> list[asyncio.Task]:
        """Apply ``region`` and ask every track to fetch for it.

        Raises:
            InvalidRegion: If the region is outside the genome.
        """
        logger.debug("Viewport region %s -> %s", self.space.region, region)
        return self._adopt(self.space.with_region(region))

    def refresh(self) -> list[asyncio.Task]:
        """Re-issue fetches for the current region."""
        return self._adopt(self.space)

    def resize(self, pixel_width: int) -> list[asyncio.Task]:
        return self._adopt(self.space.resize(pixel_width))

    # -- Navigation ----------------------------------------------------------

    def navigate(self, region: GenomicRegion) -> bool:
        """Request a region change.

        Returns:
            True if the region was accepted.
        """
        if self.navigator is not None:
            return self.navigator(region)
        self.set_region(region)
        return True

    def goto(self, region: GenomicRegion | str) -> bool:
        if isinstance(region, str):
            region = parse_region(region, self.space.genome)
        return self.navigate(region)

    def zoom(self, factor: float, anchor_px: float | None = None) -> bool:
        """Zoom around ``anchor_px`` (the center when omitted); ``factor < 1`` zooms in."""
        if anchor_px is None:
            anchor_px = self.space.pixel_width / 2
        return self.navigate(self.space.zoom(factor, anchor_px).region)

    def pan(self, delta_px: float) -> bool:
        return self.navigate(self.space.pan(delta_px).region)

    # -- Rendering and interaction -------------------------------------------

    def _layout(self) -> list[tuple[Track, float]]:
        offsets = []
        y = 0.0
        for track in self.tracks:
            if not track.visible:
                continue
            offsets.append((track, y))
            y += track.height
        return offsets

    def render(self) -> Surface:
        """Draw every visible track, stacked top to bottom by ``order``."""
        layout = self._layout()
        height = sum(track.height for track, _y in layout)
        surface = Surface(self.space.pixel_width, height)
        for track, y in layout:
            track.render(surface, y)
        return surface

    def hit_test(self, px: float, py: float) -> tuple[str, str] | None:
        """``(track id, feature id)`` under the viewport point, or None."""
        for track, y in self._layout():
            if y <= py < y + track.height:
                hit = track.hit_test(px, py - y)
                return (track.id, hit) if hit is not None else None
        return None

    def click(self, px: float, py: float) -> tuple[str, str] | None:
        """Hit test, expanding or collapsing a mutation cluster when one is hit."""
        hit = self.hit_test(px, py)
        if hit is None:
            return None
        track = self._tracks[hit[0]]
        if isinstance(track, MutationTrack) and hit[1].startswith("cluster:"):
            expanded = track.expand_cluster(hit[1])
            logger.debug("Cluster %s %s", hit[1], "expanded" if expanded else "collapsed")
        return hit

    async def wait_idle(self) -> None:
        """Wait until no track has a fetch in flight."""
        while any(t.pending for t in self._tracks.values()):
            await asyncio.gather(*(t.wait_idle() for t in self._tracks.values()))

    def close(self) -> None:
        for track in self._tracks.values():
            track.close()
