"""Mutation summary statistics for the current cohort."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..constants import TOPIC_REGION_CHANGED
from ..core.features import MutationFeature, feature_record
from ..state.bus import EventBus
from ..state.events import RegionChanged
from ..state.store import CohortStore, field_filter, filter_options
from .base import SiblingView


@dataclass(frozen=True)
class MutationSummary:
    mutations: int
    samples: int
    unique_positions: int
    total_count: int
    by_consequence: dict[str, int] = field(default_factory=dict)

    @property
    def mean_per_sample(self) -> float:
        return self.total_count / self.samples if self.samples else 0.0


class MutationSummaryView(SiblingView):
    """Counts of mutations in the active region that pass the cohort filters.

    When sample rows are given, filters on sample fields also drop the
    mutations of samples that no longer pass.
    """

    name = "mutation-summary"

    def __init__(
        self,
        bus: EventBus,
        store: CohortStore,
        mutations: Iterable[MutationFeature],
        samples: Iterable[Mapping[str, Any]] | None = None,
    ):
        self.mutations = list(mutations)
        self.samples = [dict(s) for s in samples] if samples is not None else None
        super().__init__(bus, store)
        self._handles.append(
            bus.subscribe(TOPIC_REGION_CHANGED, self._on_region, handler_id=f"{self.name}:region:{id(self):x}")
        )

    def _on_region(self, event: RegionChanged) -> None:
        self.revision += 1

    def visible(self, *, selected_only: bool = False) -> list[MutationFeature]:
        region = self.store.active_region
        if self.samples is None:
            passing = [m for m in self.mutations if self.store.passes(feature_record(m))]
        else:
            passing = self.store.linked_cohort(self.samples, self.mutations).mutations
        found = [m for m in passing if region is None or region.contains(m.position)]
        if selected_only and self.sample_ids:
            found = [m for m in found if m.sample_id in self.sample_ids]
        return found

    def summary(self, *, selected_only: bool = False) -> MutationSummary:
        found = self.visible(selected_only=selected_only)
        by_consequence: Counter[str] = Counter()
        for m in found:
            by_consequence[m.consequence] += m.count
        return MutationSummary(
            mutations=len(found),
            samples=len({m.sample_id for m in found if m.sample_id}),
            unique_positions=len({m.position for m in found}),
            total_count=sum(m.count for m in found),
            by_consequence=dict(by_consequence.most_common()),
        )

    def filter_by_consequence(self, consequence: str) -> None:
        """Bar click: restrict every view to one consequence class."""
        self.store.set_filter("consequence", field_filter("consequence", consequence), source=self.name)

    def consequence_options(self) -> list[str]:
        """Consequence classes present in the loaded mutations."""
        return filter_options((feature_record(m) for m in self.mutations), ["consequence"])["consequence"]
