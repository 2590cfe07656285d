"""Sample table: one row per sample, filterable and sortable."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..core.features import MutationFeature
from ..state.bus import EventBus
from ..state.store import CohortStore, filter_options
from .base import SiblingView


class SampleTableView(SiblingView):
    """Tabular listing of sample records keyed by ``sample_id``.

    Args:
        bus: Shared EventBus.
        store: Shared CohortStore; only its methods are used.
        samples: Sample records, each a mapping with at least ``sample_id``.
        mutations: Optional mutations of these samples. When given, filters
            on mutation fields narrow the table to samples carrying a
            passing mutation.
    """

    name = "sample-table"

    def __init__(
        self,
        bus: EventBus,
        store: CohortStore,
        samples: Iterable[Mapping[str, Any]],
        mutations: Iterable[MutationFeature] | None = None,
    ):
        self.samples = [dict(s) for s in samples]
        missing = [i for i, s in enumerate(self.samples) if "sample_id" not in s]
        if missing:
            raise ValueError(f"Sample records {missing} lack 'sample_id'")
        self.mutations = list(mutations) if mutations is not None else None
        self.sort_key = "sample_id"
        self.descending = False
        super().__init__(bus, store)

    def sort_by(self, key: str, descending: bool = False) -> None:
        self.sort_key = key
        self.descending = descending

    def visible_samples(self) -> list[Mapping[str, Any]]:
        if self.mutations is None:
            return self.store.apply_filters(self.samples)
        return self.store.linked_cohort(self.samples, self.mutations).samples

    def rows(self) -> list[dict[str, Any]]:
        """Samples passing the active filters, with a ``selected`` flag."""
        rows = [{**r, "selected": r["sample_id"] in self.sample_ids} for r in self.visible_samples()]
        key = self.sort_key
        rows.sort(key=lambda r: (r.get(key) is None, str(r.get(key, ""))), reverse=self.descending)
        return rows

    def selected_rows(self) -> list[dict[str, Any]]:
        return [r for r in self.rows() if r["selected"]]

    def filter_options(self, *fields: str) -> dict[str, list[Any]]:
        """Values offered for each sample field, drawn from every row, not just visible ones."""
        return filter_options(self.samples, fields)

    def click(self, sample_id: str, *, additive: bool = False) -> None:
        """Row click: replace the selection, or toggle the row when ``additive``."""
        self.store.toggle_sample_selection(
            sample_id, "toggle" if additive else "replace", source=self.name
        )
