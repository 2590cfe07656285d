"""Canonical shared cohort state: region, selection and filters.

The store is the single mutable resource shared between visualizations.
Everything outside mutates it through its methods; every mutation is
applied synchronously and published on the EventBus before the method
returns. Concurrent gestures resolve as last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..constants import TOPIC_FILTERS_CHANGED, TOPIC_REGION_CHANGED, TOPIC_SELECTION_CHANGED
from ..core.features import MutationFeature, feature_record
from ..core.region import Genome, GenomicRegion
from ..errors import GenoviewError
from .bus import EventBus
from .events import FiltersChanged, RegionChanged, SelectionChanged

logger = logging.getLogger(__name__)

SELECTION_MODES = ("add", "remove", "replace", "toggle")


@dataclass(frozen=True)
class FilterPredicate:
    """A record predicate together with a serializable description.

    Records that lack the filtered field, or hold None in it, pass, so one
    filter set can be applied to heterogeneous records such as mutations
    and sample rows.
    """

    test: Callable[[Mapping[str, Any]], bool] = field(compare=False)
    description: dict[str, Any]

    def __call__(self, record: Mapping[str, Any]) -> bool:
        return self.test(record)


def field_filter(field_name: str, allowed: Any) -> FilterPredicate:
    """Keep records whose ``field_name`` equals ``allowed`` or is one of its members."""
    if isinstance(allowed, (str, bytes)) or not isinstance(allowed, Iterable):
        values = frozenset([allowed])
    else:
        values = frozenset(allowed)

    def test(record: Mapping[str, Any]) -> bool:
        value = record.get(field_name)
        if value is None:
            return True
        return value in values

    return FilterPredicate(
        test=test,
        description={"field": field_name, "op": "in", "values": sorted(values, key=str)},
    )


def range_filter(field_name: str, low: float | None = None, high: float | None = None) -> FilterPredicate:
    """Keep records whose ``field_name`` lies in ``[low, high]``; None leaves a side open."""
    if low is not None and high is not None and low > high:
        raise ValueError(f"range_filter low ({low}) exceeds high ({high})")

    def test(record: Mapping[str, Any]) -> bool:
        value = record.get(field_name)
        if value is None:
            return True
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False
        return True

    return FilterPredicate(
        test=test,
        description={"field": field_name, "op": "range", "low": low, "high": high},
    )


def filter_options(records: Iterable[Mapping[str, Any]], fields: Iterable[str]) -> dict[str, list[Any]]:
    """Distinct values present for each field, sorted, for building filter controls.

    Missing and None values are skipped, so a field nobody carries maps to
    an empty list.
    """
    records = list(records)
    options: dict[str, list[Any]] = {}
    for name in fields:
        values = {r.get(name) for r in records} - {None}
        options[name] = sorted(values, key=lambda v: (isinstance(v, str), v))
    return options


@dataclass(frozen=True)
class Cohort:
    """Sample rows and mutations left after the filters, linked through ``sample_id``."""

    samples: list[Mapping[str, Any]]
    mutations: list[MutationFeature]

    @property
    def sample_ids(self) -> frozenset[str]:
        return frozenset(s["sample_id"] for s in self.samples)

    @property
    def counts(self) -> dict[str, int]:
        return {"samples": len(self.samples), "mutations": len(self.mutations)}


@dataclass(frozen=True)
class CohortSnapshot:
    """Immutable view of the store at one point in time."""

    genome: str
    active_region: GenomicRegion | None
    selected_sample_ids: frozenset[str]
    selected_feature_ids: frozenset[str]
    filters: dict[str, dict[str, Any]]


class CohortStore:
    """Shared state for one viewer session.

    Args:
        bus: EventBus the store publishes on.
        genome: Assembly used to validate regions.
        region: Optional initial region; validated but not published.
    """

    def __init__(self, bus: EventBus, genome: Genome, region: GenomicRegion | None = None):
        self.bus = bus
        self.genome = genome
        self._region: GenomicRegion | None = region.validate(genome) if region is not None else None
        self._samples: frozenset[str] = frozenset()
        self._features: frozenset[str] = frozenset()
        self._filters: dict[str, FilterPredicate] = {}
        self.valid_sample_ids: frozenset[str] | None = None
        self.valid_feature_ids: frozenset[str] | None = None

    # -- Read access ---------------------------------------------------------

    @property
    def active_region(self) -> GenomicRegion | None:
        return self._region

    @property
    def selected_sample_ids(self) -> frozenset[str]:
        return self._samples

    @property
    def selected_feature_ids(self) -> frozenset[str]:
        return self._features

    @property
    def filters(self) -> dict[str, FilterPredicate]:
        return dict(self._filters)

    def filter_descriptions(self) -> dict[str, dict[str, Any]]:
        return {key: dict(p.description) for key, p in self._filters.items()}

    def snapshot(self) -> CohortSnapshot:
        return CohortSnapshot(
            genome=self.genome.name,
            active_region=self._region,
            selected_sample_ids=self._samples,
            selected_feature_ids=self._features,
            filters=self.filter_descriptions(),
        )

    # -- Region --------------------------------------------------------------

    def set_region(self, region: GenomicRegion, *, source: str = "store") -> bool:
        """Validate and apply a new active region.

        Returns:
            True if applied and published; False if the region was rejected,
            in which case the previous state is retained.
        """
        try:
            region.validate(self.genome)
        except GenoviewError as e:
            logger.warning("Rejected region %s: %s", region, e)
            return False

        previous = self._region
        self._region = region
        logger.debug("Active region %s -> %s (%s)", previous, region, source)
        self.bus.publish(TOPIC_REGION_CHANGED, RegionChanged(region=region, previous=previous, source=source))
        return True

    # -- Selection -----------------------------------------------------------

    @staticmethod
    def _apply_mode(current: frozenset[str], ids: Iterable[str], mode: str) -> frozenset[str]:
        ids = frozenset(ids)
        if mode == "add":
            return current | ids
        if mode == "remove":
            return current - ids
        if mode == "replace":
            return ids
        if mode == "toggle":
            return current ^ ids
        raise ValueError(f"mode must be one of {SELECTION_MODES}, got '{mode}'")

    def toggle_sample_selection(
        self, sample_id: str | Iterable[str], mode: str = "add", *, source: str = "store"
    ) -> frozenset[str]:
        """Add, remove, replace or flip selected samples and publish the full set.

        Raises:
            ValueError: If ``mode`` is not one of add, remove, replace, toggle.
        """
        ids = [sample_id] if isinstance(sample_id, str) else list(sample_id)
        self._samples = self._apply_mode(self._samples, ids, mode)
        self._publish_selection(source)
        return self._samples

    def toggle_feature_selection(
        self, feature_id: str | Iterable[str], mode: str = "add", *, source: str = "store"
    ) -> frozenset[str]:
        ids = [feature_id] if isinstance(feature_id, str) else list(feature_id)
        self._features = self._apply_mode(self._features, ids, mode)
        self._publish_selection(source)
        return self._features

    def update_selection(
        self,
        sample_ids: Iterable[str] = (),
        feature_ids: Iterable[str] = (),
        mode: str = "add",
        *,
        source: str = "store",
    ) -> None:
        """Apply one selection gesture to samples and features with a single publish."""
        samples = self._apply_mode(self._samples, sample_ids, mode)
        self._features = self._apply_mode(self._features, feature_ids, mode)
        self._samples = samples
        self._publish_selection(source)

    def set_selection(
        self,
        sample_ids: Iterable[str] = (),
        feature_ids: Iterable[str] = (),
        *,
        source: str = "store",
    ) -> None:
        self._samples = frozenset(sample_ids)
        self._features = frozenset(feature_ids)
        self._publish_selection(source)

    def clear_selection(self, *, source: str = "store") -> None:
        self.set_selection((), (), source=source)

    def apply_prune(
        self,
        valid_ids: Iterable[str],
        feature_ids: Iterable[str] | None = None,
        *,
        source: str = "store",
    ) -> None:
        """Drop selected ids that are no longer part of the active dataset.

        Always publishes ``selection-changed``, even when nothing was removed.

        Args:
            valid_ids: Sample ids present in the dataset.
            feature_ids: Feature ids present in the dataset; feature
                selection is left untouched when omitted.
        """
        self.valid_sample_ids = frozenset(valid_ids)
        pruned = self._samples & self.valid_sample_ids
        removed = len(self._samples) - len(pruned)
        self._samples = pruned

        if feature_ids is not None:
            self.valid_feature_ids = frozenset(feature_ids)
            kept = self._features & self.valid_feature_ids
            removed += len(self._features) - len(kept)
            self._features = kept

        if removed:
            logger.info("Pruned %d stale selected ids", removed)
        self._publish_selection(source)

    def _publish_selection(self, source: str) -> None:
        self.bus.publish(
            TOPIC_SELECTION_CHANGED,
            SelectionChanged(sample_ids=self._samples, feature_ids=self._features, source=source),
        )

    # -- Filters -------------------------------------------------------------

    def set_filter(self, key: str, predicate: FilterPredicate, *, source: str = "store") -> None:
        self._filters[key] = predicate
        self._publish_filters(source)

    def clear_filter(self, key: str, *, source: str = "store") -> bool:
        """Remove one filter. Returns False (and publishes nothing) if it was not set."""
        if self._filters.pop(key, None) is None:
            return False
        self._publish_filters(source)
        return True

    def clear_filters(self, *, source: str = "store") -> None:
        self._filters.clear()
        self._publish_filters(source)

    def passes(self, record: Mapping[str, Any]) -> bool:
        """True if ``record`` satisfies every active filter."""
        return all(predicate(record) for predicate in self._filters.values())

    def apply_filters(self, records: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
        return [r for r in records if self.passes(r)]

    def linked_cohort(
        self, samples: Iterable[Mapping[str, Any]], mutations: Iterable[MutationFeature]
    ) -> Cohort:
        """Apply the filters to samples and mutations together.

        With any filter active, a sample stays only if it passes and carries
        at least one passing mutation, and a passing mutation stays only if
        its sample row was kept. Mutations of samples without a row are
        judged on their own fields. With no filters nothing is dropped.
        """
        samples = list(samples)
        mutations = list(mutations)
        if not self._filters:
            return Cohort(samples=samples, mutations=mutations)

        passing = [m for m in mutations if self.passes(feature_record(m))]
        carriers = {m.sample_id for m in passing}
        kept = [s for s in samples if self.passes(s) and s["sample_id"] in carriers]

        known = {s["sample_id"] for s in samples}
        kept_ids = {s["sample_id"] for s in kept}
        linked = [m for m in passing if m.sample_id not in known or m.sample_id in kept_ids]
        logger.debug(
            "Linked cohort: %d/%d samples, %d/%d mutations", len(kept), len(samples), len(linked), len(mutations)
        )
        return Cohort(samples=kept, mutations=linked)

    def _publish_filters(self, source: str) -> None:
        self.bus.publish(
            TOPIC_FILTERS_CHANGED,
            FiltersChanged(filters=self.filter_descriptions(), source=source),
        )
