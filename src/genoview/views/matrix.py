"""Sample x gene matrix (oncoprint-style) view."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..core.features import MatrixCell, feature_record
from ..state.bus import EventBus
from ..state.store import CohortStore
from .base import SiblingView


@dataclass(frozen=True)
class MatrixGrid:
    samples: list[str]
    features: list[str]
    cells: dict[tuple[str, str], MatrixCell]

    def value(self, sample_id: str, feature_id: str) -> MatrixCell | None:
        return self.cells.get((sample_id, feature_id))


class SampleMatrixView(SiblingView):
    """Grid of samples (rows) by features (columns).

    Columns are ordered by how many samples carry the feature, then by id;
    selected samples sort to the top.
    """

    name = "sample-matrix"

    def __init__(
        self,
        bus: EventBus,
        store: CohortStore,
        cells: Iterable[MatrixCell],
        *,
        restrict_to_selection: bool = False,
    ):
        self.cells = list(cells)
        self.restrict_to_selection = restrict_to_selection
        super().__init__(bus, store)

    def grid(self) -> MatrixGrid:
        cells = [c for c in self.cells if self.store.passes(feature_record(c))]
        if self.restrict_to_selection and self.sample_ids:
            cells = [c for c in cells if c.sample_id in self.sample_ids]

        by_feature: dict[str, set[str]] = {}
        for cell in cells:
            by_feature.setdefault(cell.feature_id, set()).add(cell.sample_id)

        samples = sorted({c.sample_id for c in cells}, key=lambda s: (s not in self.sample_ids, s))
        features = sorted(by_feature, key=lambda f: (-len(by_feature[f]), f))
        return MatrixGrid(
            samples=samples,
            features=features,
            cells={(c.sample_id, c.feature_id): c for c in cells},
        )

    def click(self, sample_id: str, *, additive: bool = False) -> None:
        self.store.toggle_sample_selection(
            sample_id, "toggle" if additive else "replace", source=self.name
        )
