"""Aligned-read track with read packing and a coverage summary mode."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field

import numpy as np

from ..constants import EDIT_OP_COLORS, READ_GAP, READ_HEIGHT, STRAND_COLORS
from ..core.coords import CoordinateSpace, Resolution
from ..core.features import AlignmentFeature, CoverageBin, EditOp, Feature, TrackKind
from ..core.region import GenomicRegion
from ..render.surface import Surface
from .base import Track
from .packing import pack_rows

INSERTION_WIDTH_PX = 2.0


def read_extent(read: AlignmentFeature) -> tuple[int, int]:
    """Reference span a read occupies on screen, soft clips included."""
    left = sum(e.length for e in read.edits if e.op == "S" and e.start <= read.start)
    right = sum(e.length for e in read.edits if e.op == "S" and e.start >= read.end)
    return read.start - left, read.end + right


def _distance_sums(points: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """For each edge, the summed distance from every point lying left of it."""
    points = np.sort(points)
    prefix = np.concatenate(([0], np.cumsum(points)))
    left = np.searchsorted(points, edges, side="left")
    return left * edges - prefix[left]


def coverage_from_reads(
    reads: list[AlignmentFeature], region: GenomicRegion, bin_size: int, prefix: str = "cov"
) -> list[CoverageBin]:
    """Sum aligned read spans into mean depth per ``bin_size`` bin.

    Covered bases are counted at bin edges from the sorted span starts and
    ends, so memory follows the number of spans and bins rather than the
    region length. Deletions and skipped regions (introns) do not add depth.
    """
    starts: list[int] = []
    ends: list[int] = []
    for read in reads:
        spans = [(e.start, e.start + e.length) for e in read.edits if e.op in ("M", "=", "X")]
        if not spans:
            spans = [(read.start, read.end)]
        for start, end in spans:
            lo = min(max(start, region.start), region.end)
            hi = min(max(end, region.start), region.end)
            if hi > lo:
                starts.append(lo)
                ends.append(hi)

    edges = np.append(np.arange(region.start, region.end, bin_size, dtype=np.int64), region.end)
    covered = _distance_sums(np.asarray(starts, dtype=np.int64), edges) - _distance_sums(
        np.asarray(ends, dtype=np.int64), edges
    )
    depth = np.diff(covered) / np.diff(edges)

    bins: list[CoverageBin] = []
    for i, mean in enumerate(depth):
        start, end = int(edges[i]), int(edges[i + 1])
        bins.append(CoverageBin(id=f"{prefix}:{start}", start=start, end=end, depth=float(mean)))
    return bins


@dataclass
class AlignmentLayout:
    mode: str  # "reads" or "coverage"
    rows: dict[str, int] = field(default_factory=dict)
    row_count: int = 0
    coverage: list[CoverageBin] = field(default_factory=list)


class AlignmentTrack(Track):
    kind = TrackKind.ALIGNMENT
    feature_types = (AlignmentFeature, CoverageBin)

    def resolution_for(self, space: CoordinateSpace) -> Resolution:
        threshold_bpp = self.config.alignment_coverage_threshold / space.pixel_width
        return space.resolution_for(threshold_bpp)

    def layout(self, features: list[Feature], region: GenomicRegion, resolution: Resolution) -> AlignmentLayout:
        reads = [f for f in features if isinstance(f, AlignmentFeature)]
        summary = [f for f in features if isinstance(f, CoverageBin)]

        if resolution.aggregate or (summary and not reads):
            if not summary:
                summary = coverage_from_reads(reads, region, resolution.bin_size, prefix=self.id)
            return AlignmentLayout(mode="coverage", coverage=sorted(summary, key=lambda b: b.start))

        placements, row_count = pack_rows(reads, read_extent, gap=1)
        return AlignmentLayout(
            mode="reads",
            rows={read.id: row for read, row in placements},
            row_count=row_count,
        )

    @property
    def mode(self) -> str:
        return self._layout.mode if self._layout is not None else "reads"

    def _row_pitch(self) -> int:
        return READ_HEIGHT + READ_GAP

    def _max_rows(self) -> int:
        return max(1, int(self.content_height // self._row_pitch()))

    def draw(self, surface: Surface, space: CoordinateSpace) -> None:
        layout: AlignmentLayout | None = self._layout
        if layout is None:
            return
        if layout.mode == "coverage":
            self._draw_coverage(surface, space, layout.coverage)
        else:
            self._draw_reads(surface, space, layout)

    def _draw_coverage(self, surface: Surface, space: CoordinateSpace, bins: list[CoverageBin]) -> None:
        region = space.region
        visible = [b for b in bins if region.overlaps(b.start, b.end)]
        peak = max((b.depth for b in visible), default=0.0) or 1.0
        height = self.content_height
        for b in visible:
            x = space.project(max(region.start, b.start))
            w = max(1.0, space.project(min(region.end, b.end)) - x)
            h = b.depth / peak * height
            surface.rect(x, height - h, w, h, fill="#9e9e9e", role="coverage", feature=b.id, depth=b.depth)

    def _draw_reads(self, surface: Surface, space: CoordinateSpace, layout: AlignmentLayout) -> None:
        max_rows = self._max_rows()
        hidden = 0
        for read in self.visible_features():
            if not isinstance(read, AlignmentFeature):
                continue
            row = layout.rows.get(read.id, 0)
            if row >= max_rows:
                hidden += 1
                continue
            y = row * self._row_pitch()
            self._draw_read(surface, space, read, y)
        if hidden:
            surface.text(
                space.pixel_width - 4,
                self.content_height - 2,
                f"+{hidden} reads in {layout.row_count - max_rows} more rows",
                role="overflow",
                anchor="end",
                font_size=9,
            )

    def _draw_read(self, surface: Surface, space: CoordinateSpace, read: AlignmentFeature, y: float) -> None:
        base_color = STRAND_COLORS.get(read.strand, "#90a4ae")
        x1 = space.project(read.start)
        surface.rect(
            x1,
            y,
            max(1.0, space.project(read.end) - x1),
            READ_HEIGHT,
            fill=base_color,
            opacity=0.6,
            feature=read.id,
            role="read",
        )
        for edit in read.edits:
            self._draw_edit(surface, space, read, edit, y)

    def _draw_edit(
        self, surface: Surface, space: CoordinateSpace, read: AlignmentFeature, edit: EditOp, y: float
    ) -> None:
        """Soft clips and indels are always drawn; they mark candidate breakpoints."""
        color = EDIT_OP_COLORS.get(edit.op)
        if color is None:
            return
        if edit.op == "S":
            if edit.start <= read.start:
                start, end = edit.start - edit.length, edit.start
            else:
                start, end = edit.start, edit.start + edit.length
            x = space.project(start)
            surface.rect(
                x, y, max(1.0, space.project(end) - x), READ_HEIGHT,
                fill=color, op="S", feature=read.id, sequence=edit.sequence,
            )
        elif edit.op == "I":
            x = space.project(edit.start)
            surface.rect(
                x - INSERTION_WIDTH_PX / 2, y - 1, INSERTION_WIDTH_PX, READ_HEIGHT + 2,
                fill=color, op="I", feature=read.id, length=edit.length,
            )
        elif edit.op in ("D", "N"):
            x = space.project(edit.start)
            x2 = space.project(edit.start + edit.length)
            # Gap in the read body with a connecting line
            surface.rect(x, y, max(1.0, x2 - x), READ_HEIGHT, fill="#ffffff", op=edit.op, feature=read.id)
            surface.line(x, y + READ_HEIGHT / 2, x2, y + READ_HEIGHT / 2, stroke=color, op=edit.op, feature=read.id)
        else:
            x = space.project(edit.start)
            surface.rect(
                x, y, max(1.0, space.project(edit.start + edit.length) - x), READ_HEIGHT,
                fill=color, op=edit.op, feature=read.id,
            )

    def _hit(self, px: float, py: float, space: CoordinateSpace) -> str | None:
        layout: AlignmentLayout | None = self._layout
        if layout is None:
            return None
        position = space.to_position(px)
        if layout.mode == "coverage":
            i = bisect_right(layout.coverage, position, key=lambda b: b.start) - 1
            if i >= 0 and position < layout.coverage[i].end:
                return layout.coverage[i].id
            return None

        pitch = self._row_pitch()
        row = int(py // pitch)
        if py - row * pitch > READ_HEIGHT:
            return None
        tolerance = self._tolerance_bp(space)
        for read in self._index.overlapping(position - tolerance, position + tolerance + 1):
            if layout.rows.get(read.id) == row:
                return read.id
        return None
