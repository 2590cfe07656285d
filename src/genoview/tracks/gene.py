"""Gene model track: backbone, exon blocks and strand arrows."""

from __future__ import annotations

from ..constants import GENE_LABEL_MIN_PX, STRAND_COLORS
from ..core.coords import CoordinateSpace, Resolution
from ..core.features import Feature, GeneFeature, TrackKind
from ..core.region import GenomicRegion
from ..render.surface import Surface
from .base import Track
from .packing import pack_rows

ROW_HEIGHT = 15
EXON_HEIGHT = 10
ARROW_SPACING_PX = 20


class GeneTrack(Track):
    kind = TrackKind.GENE
    feature_types = (GeneFeature,)

    def can_reuse(self, region: GenomicRegion, resolution: Resolution) -> bool:
        return self._cache_covers(region, resolution)

    def layout(self, features: list[Feature], region: GenomicRegion, resolution: Resolution) -> dict[str, int]:
        placements, _ = pack_rows(features, lambda g: (g.start, g.end))
        return {gene.id: row for gene, row in placements}

    def _row(self, gene: Feature) -> int:
        rows = self._layout or {}
        return rows.get(gene.id, 0)

    def _max_rows(self) -> int:
        return max(1, int(self.content_height // ROW_HEIGHT))

    def draw(self, surface: Surface, space: CoordinateSpace) -> None:
        region = space.region
        show_arrows = space.bp_per_pixel < self.config.strand_arrow_max_bp_per_pixel

        for gene in self.visible_features():
            assert isinstance(gene, GeneFeature)
            row = self._row(gene)
            if row >= self._max_rows():
                continue
            y = row * ROW_HEIGHT + 2
            color = STRAND_COLORS.get(gene.strand, "#7f8c8d")
            x1 = space.project(max(region.start, gene.start))
            x2 = space.project(min(region.end, gene.end))
            mid = y + EXON_HEIGHT / 2

            surface.line(x1, mid, x2, mid, stroke=color, stroke_width=2, feature=gene.id)

            for exon in gene.exons:
                start, end = max(region.start, exon.start), min(region.end, exon.end)
                if start >= end:
                    continue
                ex = space.project(start)
                height = EXON_HEIGHT if exon.kind in ("exon", "cds") else EXON_HEIGHT / 2
                surface.rect(
                    ex,
                    mid - height / 2,
                    max(1.0, space.project(end) - ex),
                    height,
                    fill=color,
                    feature=gene.id,
                    exon_kind=exon.kind,
                )

            if show_arrows:
                self._draw_arrows(surface, gene, x1, x2, mid, color)

            if x2 - x1 > GENE_LABEL_MIN_PX and gene.symbol:
                surface.text(x1 + 5, y + 8, gene.symbol, feature=gene.id, font_size=9)

    def _draw_arrows(
        self, surface: Surface, gene: GeneFeature, x1: float, x2: float, mid: float, color: str
    ) -> None:
        """Chevrons along the backbone pointing in the transcription direction."""
        direction = 1 if gene.strand == "+" else -1
        x = x1 + ARROW_SPACING_PX / 2
        while x < x2:
            surface.path(
                [(x - 2 * direction, mid - 3), (x + 2 * direction, mid), (x - 2 * direction, mid + 3)],
                stroke=color,
                role="strand-arrow",
                feature=gene.id,
            )
            x += ARROW_SPACING_PX

    def _hit(self, px: float, py: float, space: CoordinateSpace) -> str | None:
        row = int(py // ROW_HEIGHT)
        position = space.to_position(px)
        tolerance = self._tolerance_bp(space)
        for gene in self._index.overlapping(position - tolerance, position + tolerance + 1):
            if self._row(gene) != row:
                continue
            if self.filter is not None and not self.filter(gene):
                continue
            return gene.id
        return None
