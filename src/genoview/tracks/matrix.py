"""Sample x feature matrix track aligned to genomic coordinates."""

from __future__ import annotations

from ..constants import MATRIX_ROW_HEIGHT, MUTATION_COLORS
from ..core.coords import CoordinateSpace
from ..core.features import MatrixCell, TrackKind
from ..render.surface import Surface
from .base import Track


class MatrixTrack(Track):
    """One row per sample; each cell spans its feature's genomic interval."""

    kind = TrackKind.MATRIX
    feature_types = (MatrixCell,)

    def __init__(self, *args, restrict_to_selection: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.restrict_to_selection = restrict_to_selection
        self.highlighted = frozenset()

    @property
    def highlighted(self) -> frozenset[str]:
        return self._highlighted

    @highlighted.setter
    def highlighted(self, sample_ids: frozenset[str]) -> None:
        self._highlighted = frozenset(sample_ids)
        self._derived.pop("rows", None)

    def sample_ids(self) -> set[str]:
        return {c.sample_id for c in self._index.features if isinstance(c, MatrixCell)}

    def rows(self) -> list[str]:
        """Sample order: highlighted samples first, then the rest, each sorted.

        With ``restrict_to_selection`` and a non-empty selection, only the
        highlighted samples are listed. The order is kept until the space,
        the highlight or the filter changes.
        """
        if self.space is None:
            return []
        return self._derived_value("rows", self.space, self._order_rows, self.restrict_to_selection)

    def _order_rows(self) -> list[str]:
        samples = {c.sample_id for c in self.visible_features() if isinstance(c, MatrixCell)}
        if self.restrict_to_selection and self.highlighted:
            samples &= self.highlighted
        return sorted(samples, key=lambda s: (s not in self.highlighted, s))

    @staticmethod
    def _fill(cell: MatrixCell) -> str:
        if cell.category:
            return MUTATION_COLORS.get(cell.category, MUTATION_COLORS["other"])
        shade = int(230 - 180 * min(max(cell.value, 0.0), 1.0))
        return f"#{shade:02x}{shade:02x}{shade:02x}"

    def draw(self, surface: Surface, space: CoordinateSpace) -> None:
        region = space.region
        row_of = {sample: i for i, sample in enumerate(self.rows())}
        max_rows = max(1, int(self.content_height // MATRIX_ROW_HEIGHT))

        for sample, row in row_of.items():
            if row >= max_rows:
                break
            if sample in self.highlighted:
                surface.rect(
                    0, row * MATRIX_ROW_HEIGHT, space.pixel_width, MATRIX_ROW_HEIGHT,
                    fill="#fff8e1", role="highlight", sample=sample,
                )

        for cell in self.visible_features():
            assert isinstance(cell, MatrixCell)
            row = row_of.get(cell.sample_id)
            if row is None or row >= max_rows:
                continue
            x = space.project(max(region.start, cell.start))
            w = max(1.0, space.project(min(region.end, cell.end)) - x)
            surface.rect(
                x, row * MATRIX_ROW_HEIGHT + 1, w, MATRIX_ROW_HEIGHT - 2,
                fill=self._fill(cell), feature=cell.id, sample=cell.sample_id,
            )

    def _hit(self, px: float, py: float, space: CoordinateSpace) -> str | None:
        rows = self.rows()
        row = int(py // MATRIX_ROW_HEIGHT)
        if row >= len(rows):
            return None
        sample = rows[row]
        position = space.to_position(px)
        tolerance = self._tolerance_bp(space, px=1.0)
        for cell in self._index.overlapping(position - tolerance, position + tolerance + 1):
            if isinstance(cell, MatrixCell) and cell.sample_id == sample:
                if self.filter is None or self.filter(cell):
                    return cell.id
        return None
