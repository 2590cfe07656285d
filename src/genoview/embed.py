"""Embed configuration and the session that assembles a complete viewer."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .config import GenoviewConfig
from .constants import DEFAULT_GENOME, DEFAULT_PIXEL_WIDTH, DEFAULT_REGION
from .coordinator import Coordinator
from .core.region import Genome, parse_region
from .providers import BamAlignmentProvider, DataProvider, HttpFeatureProvider
from .render.surface import Surface
from .state.bus import EventBus
from .state.events import SelectionChanged
from .state.store import CohortSnapshot, CohortStore
from .tracks import Track, create_track
from .urlstate import apply_state, deserialize_state, serialize_state
from .viewport import Viewport

logger = logging.getLogger(__name__)


# -- Track configuration -----------------------------------------------------


class _TrackConfigBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, max_length=100)
    order: int | None = None
    height: int = Field(default=60, ge=20, le=2000)
    visible: bool = True
    label: str | None = None
    source: str | None = None  # base URL of an HTTP feature endpoint

    def track_options(self) -> dict[str, Any]:
        """Kind-specific keyword arguments for the track constructor."""
        return {}


class GeneTrackConfig(_TrackConfigBase):
    kind: Literal["gene"] = "gene"


class MutationTrackConfig(_TrackConfigBase):
    kind: Literal["mutation"] = "mutation"


class SignalTrackConfig(_TrackConfigBase):
    kind: Literal["signal"] = "signal"
    fixed_scale: float | None = Field(default=None, gt=0)

    def track_options(self) -> dict[str, Any]:
        return {"fixed_scale": self.fixed_scale}


class AlignmentTrackConfig(_TrackConfigBase):
    kind: Literal["alignment"] = "alignment"
    height: int = Field(default=200, ge=20, le=2000)
    bam_path: str | None = None
    reference: str | None = None
    max_reads: int | None = Field(default=None, ge=1)
    min_mapq: int = Field(default=0, ge=0, le=255)


class JunctionTrackConfig(_TrackConfigBase):
    kind: Literal["junction"] = "junction"
    scale: Literal["linear", "log"] = "linear"

    def track_options(self) -> dict[str, Any]:
        return {"scale": self.scale}


class MatrixTrackConfig(_TrackConfigBase):
    kind: Literal["matrix"] = "matrix"
    height: int = Field(default=120, ge=20, le=2000)
    restrict_to_selection: bool = False

    def track_options(self) -> dict[str, Any]:
        return {"restrict_to_selection": self.restrict_to_selection}


TrackConfig = Annotated[
    Union[
        GeneTrackConfig,
        MutationTrackConfig,
        SignalTrackConfig,
        AlignmentTrackConfig,
        JunctionTrackConfig,
        MatrixTrackConfig,
    ],
    Field(discriminator="kind"),
]


class EmbedConfig(BaseModel):
    """Validated configuration of an embedded viewer.

    Unrecognized keys are ignored; invalid values raise
    ``pydantic.ValidationError``.
    """

    model_config = ConfigDict(extra="ignore")

    genome: Literal["hg38", "hg19", "mm10"] = DEFAULT_GENOME
    initial_region: str = DEFAULT_REGION
    pixel_width: int = Field(default=DEFAULT_PIXEL_WIDTH, ge=100, le=4000)
    tracks: list[TrackConfig] = Field(default_factory=list)
    selected_samples: list[str] = Field(default_factory=list)
    on_selection_change: Callable[[SelectionChanged], None] | None = None

    @model_validator(mode="after")
    def _check(self) -> "EmbedConfig":
        parse_region(self.initial_region, Genome.named(self.genome))

        ids = [t.id for t in self.tracks]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"Duplicate track ids: {duplicates}")

        taken = {t.order for t in self.tracks if t.order is not None}
        if len(taken) != len([t for t in self.tracks if t.order is not None]):
            raise ValueError("Track order values must be unique")
        next_order = 0
        for track in self.tracks:
            if track.order is None:
                while next_order in taken:
                    next_order += 1
                track.order = next_order
                taken.add(next_order)
        return self


# -- Session -----------------------------------------------------------------


class ViewerSession:
    """One viewer: bus, store, viewport and coordinator, with no shared globals.

    Providers are resolved per track: an explicit entry in ``providers``
    keyed by track id wins, then the track's ``source`` URL, then a
    ``bam_path`` for alignment tracks, then ``settings.provider_url``.
    """

    def __init__(
        self,
        config: EmbedConfig,
        providers: Mapping[str, DataProvider] | None = None,
        *,
        settings: GenoviewConfig | None = None,
    ):
        self.config = config
        self.settings = settings or GenoviewConfig(genome=config.genome, pixel_width=config.pixel_width)
        self.genome = Genome.named(config.genome)
        region = parse_region(config.initial_region, self.genome)

        self.bus = EventBus()
        self.store = CohortStore(self.bus, self.genome, region)
        self.viewport = Viewport.create(
            region,
            genome=self.genome,
            pixel_width=config.pixel_width,
            bus=self.bus,
            config=self.settings,
        )
        providers = providers or {}
        for track_config in config.tracks:
            self.viewport.add_track(self._build_track(track_config, providers))

        self.coordinator = Coordinator(
            self.store,
            self.viewport,
            self.bus,
            on_selection_change=config.on_selection_change,
        )
        if config.selected_samples:
            self.store.set_selection(config.selected_samples, source="embed")
        logger.info("Viewer session on %s with %d tracks", region, len(config.tracks))

    @classmethod
    def from_dict(
        cls,
        raw: Mapping[str, Any],
        providers: Mapping[str, DataProvider] | None = None,
        *,
        settings: GenoviewConfig | None = None,
    ) -> "ViewerSession":
        """Validate a raw embed config and build a session.

        Raises:
            pydantic.ValidationError: If the config is invalid.
        """
        return cls(EmbedConfig.model_validate(dict(raw)), providers, settings=settings)

    @classmethod
    def from_url(
        cls,
        query: str,
        config: EmbedConfig,
        providers: Mapping[str, DataProvider] | None = None,
        *,
        settings: GenoviewConfig | None = None,
    ) -> "ViewerSession":
        """Build a session whose region and selection come from a shared link.

        Raises:
            InvalidRegion: If the query does not describe a valid region.
        """
        state = deserialize_state(query, Genome.named(config.genome))
        config = config.model_copy(update={"initial_region": state.region.to_string()})
        session = cls(config, providers, settings=settings)
        apply_state(session.store, state)
        return session

    def _build_track(self, track_config: _TrackConfigBase, providers: Mapping[str, DataProvider]) -> Track:
        provider = providers.get(track_config.id) or self._default_provider(track_config)
        return create_track(
            track_config.kind,  # type: ignore[attr-defined]
            track_config.id,
            provider,
            order=track_config.order if track_config.order is not None else 0,
            height=track_config.height,
            visible=track_config.visible,
            label=track_config.label,
            config=self.settings,
            **track_config.track_options(),
        )

    def _default_provider(self, track_config: _TrackConfigBase) -> DataProvider:
        kind = track_config.kind  # type: ignore[attr-defined]
        if isinstance(track_config, AlignmentTrackConfig) and track_config.bam_path:
            return BamAlignmentProvider(
                track_config.bam_path,
                reference_path=track_config.reference or self.settings.reference,
                max_reads=track_config.max_reads or self.settings.max_reads,
                min_mapq=track_config.min_mapq,
                timeout=self.settings.fetch_timeout,
            )
        base_url = track_config.source or self.settings.provider_url
        if base_url:
            return HttpFeatureProvider(
                base_url,
                kind,
                timeout=self.settings.http_timeout,
                cache_ttl=self.settings.cache_ttl,
                cache_max_size=self.settings.cache_max_size,
            )
        raise ValueError(f"No data provider for track '{track_config.id}'")

    # -- Operations ----------------------------------------------------------

    async def start(self) -> None:
        """Issue the initial fetches and wait for them to settle."""
        self.viewport.refresh()
        await self.viewport.wait_idle()

    async def settle(self) -> None:
        await self.viewport.wait_idle()

    def snapshot(self) -> CohortSnapshot:
        return self.store.snapshot()

    def share_link(self, base_url: str = "") -> str:
        query = serialize_state(self.store.snapshot())
        return f"{base_url}?{query}" if base_url else query

    def render(self) -> Surface:
        return self.viewport.render()

    def close(self) -> None:
        self.coordinator.close()
        self.viewport.close()

    async def __aenter__(self) -> "ViewerSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
