"""Mutation lollipop track with pixel-window clustering."""

from __future__ import annotations

import math
from bisect import bisect_left, bisect_right
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..constants import MUTATION_COLORS
from ..core.coords import CoordinateSpace, Resolution
from ..core.features import Feature, MutationFeature, TrackKind
from ..core.region import GenomicRegion
from ..render.surface import Surface
from .base import Track

# Clusters merge mutations whose positions fall within this many pixels
CLUSTER_WINDOW_PX = 1.0
STEM_BOTTOM_MARGIN = 2
STEM_HIT_PX = 2.0

Glyph = tuple[str, float, float, float, str, "MutationCluster"]


@dataclass
class MutationCluster:
    """Mutations drawn as one glyph because they share a pixel-equivalent window."""

    id: str
    position: int
    members: list[MutationFeature] = field(default_factory=list)

    @property
    def end(self) -> int:
        return max(m.end for m in self.members)

    @property
    def total_count(self) -> int:
        return sum(m.count for m in self.members)

    @property
    def consequence(self) -> str:
        """Dominant consequence class, weighted by count."""
        weights: dict[str, int] = {}
        for m in self.members:
            weights[m.consequence] = weights.get(m.consequence, 0) + m.count
        return max(sorted(weights), key=lambda c: weights[c])


def cluster_mutations(
    mutations: Iterable[Feature], chromosome: str, bp_per_pixel: float
) -> list[MutationCluster]:
    """Group mutations left to right into windows of ``CLUSTER_WINDOW_PX`` pixels."""
    window = max(1.0, bp_per_pixel * CLUSTER_WINDOW_PX)
    clusters: list[MutationCluster] = []
    current: MutationCluster | None = None
    for mutation in sorted(mutations, key=lambda m: (m.start, m.id)):
        assert isinstance(mutation, MutationFeature)
        if current is None or mutation.start - current.position >= window:
            current = MutationCluster(id=f"cluster:{chromosome}:{mutation.start}", position=mutation.start)
            clusters.append(current)
        current.members.append(mutation)
    return clusters


@dataclass
class MutationLayout:
    """Clusters of every fetched mutation at the fetch's scale."""

    bp_per_pixel: float
    clusters: list[MutationCluster]


@dataclass
class GlyphIndex:
    """Glyphs in drawing order and sorted by x, with the widest reach of any one glyph."""

    glyphs: list[Glyph]
    by_x: list[Glyph]
    xs: list[float]
    reach: float


class MutationTrack(Track):
    kind = TrackKind.MUTATION
    feature_types = (MutationFeature,)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._expanded: set[str] = set()

    def can_reuse(self, region: GenomicRegion, resolution: Resolution) -> bool:
        return self._cache_covers(region, resolution)

    def layout(self, features: list[Feature], region: GenomicRegion, resolution: Resolution) -> MutationLayout:
        return MutationLayout(
            bp_per_pixel=resolution.bp_per_pixel,
            clusters=cluster_mutations(features, region.chromosome, resolution.bp_per_pixel),
        )

    def radius(self, count: int) -> float:
        """Head radius; area, not radius, grows linearly with count."""
        return self.config.mutation_base_radius * math.sqrt(count)

    def sample_ids(self) -> set[str]:
        return {m.sample_id for m in self._index.features if isinstance(m, MutationFeature) and m.sample_id}

    # -- Clustering ----------------------------------------------------------

    def clusters(self, space: CoordinateSpace | None = None) -> list[MutationCluster]:
        """Visible mutations grouped by pixel-equivalent window, left to right.

        The clusters built at load time are reused while the scale matches;
        a filter or a reused cache at another scale reclusters once per space.
        """
        space = space or self.space
        if space is None:
            return []
        return self._derived_value("clusters", space, lambda: self._clusters_for(space))

    def _clusters_for(self, space: CoordinateSpace) -> list[MutationCluster]:
        layout = self._layout
        region = space.region
        if (
            isinstance(layout, MutationLayout)
            and self.filter is None
            and layout.bp_per_pixel == space.bp_per_pixel
        ):
            return [c for c in layout.clusters if region.overlaps(c.position, c.end)]
        return cluster_mutations(self.visible_features(), region.chromosome, space.bp_per_pixel)

    def expand_cluster(self, cluster_id: str) -> bool:
        """Toggle a cluster between badge and fanned-out display.

        Returns:
            True if the cluster is now expanded.
        """
        self._derived.pop("glyphs", None)
        if cluster_id in self._expanded:
            self._expanded.discard(cluster_id)
            return False
        self._expanded.add(cluster_id)
        return True

    def is_expanded(self, cluster_id: str) -> bool:
        return cluster_id in self._expanded

    # -- Geometry ------------------------------------------------------------

    def _glyph_index(self, space: CoordinateSpace) -> GlyphIndex:
        return self._derived_value("glyphs", space, lambda: self._build_glyphs(space))

    def _build_glyphs(self, space: CoordinateSpace) -> GlyphIndex:
        baseline = self.content_height - STEM_BOTTOM_MARGIN
        clusters = self.clusters(space)
        # Expansions do not outlive their cluster
        self._expanded &= {c.id for c in clusters}

        glyphs: list[Glyph] = []
        for cluster in clusters:
            x = space.project(cluster.position)
            if len(cluster.members) > 1 and cluster.id in self._expanded:
                offset = 0.0
                for member in cluster.members:
                    r = self.radius(member.count)
                    offset += r
                    glyphs.append(
                        (member.id, x + offset, self._head_y(baseline, r), r, self._color(member.consequence), cluster)
                    )
                    offset += r + 1
                continue
            r = self.radius(cluster.total_count)
            hit_id = cluster.members[0].id if len(cluster.members) == 1 else cluster.id
            glyphs.append((hit_id, x, self._head_y(baseline, r), r, self._color(cluster.consequence), cluster))

        ordered = sorted(glyphs, key=lambda g: g[1])
        reach = max([STEM_HIT_PX] + [g[3] for g in ordered])
        return GlyphIndex(glyphs=glyphs, by_x=ordered, xs=[g[1] for g in ordered], reach=reach)

    def _glyphs(self, space: CoordinateSpace) -> list[Glyph]:
        """``(hit id, x, head y, radius, color, cluster)`` for every glyph, in drawing order."""
        return self._glyph_index(space).glyphs

    def _head_y(self, baseline: float, radius: float) -> float:
        return max(radius, baseline * 0.35)

    @staticmethod
    def _color(consequence: str) -> str:
        return MUTATION_COLORS.get(consequence, MUTATION_COLORS["other"])

    def draw(self, surface: Surface, space: CoordinateSpace) -> None:
        baseline = self.content_height - STEM_BOTTOM_MARGIN
        surface.line(0, baseline, space.pixel_width, baseline, stroke="#cccccc", role="axis")

        for hit_id, x, cy, r, color, cluster in self._glyphs(space):
            surface.line(x, baseline, x, cy + r, stroke="#666666", stroke_width=1, feature=hit_id)
            surface.circle(x, cy, r, fill=color, stroke="#ffffff", feature=hit_id)
            if hit_id == cluster.id:
                surface.text(
                    x + r + 2,
                    cy - r,
                    str(len(cluster.members)),
                    role="badge",
                    feature=cluster.id,
                    font_size=9,
                )

    def _hit(self, px: float, py: float, space: CoordinateSpace) -> str | None:
        index = self._glyph_index(space)
        lo = bisect_left(index.xs, px - index.reach)
        hi = bisect_right(index.xs, px + index.reach)

        best: tuple[float, str] | None = None
        baseline = self.content_height - STEM_BOTTOM_MARGIN
        for hit_id, x, cy, r, _color, _cluster in index.by_x[lo:hi]:
            dx = px - x
            on_head = dx * dx + (py - cy) ** 2 <= r * r
            on_stem = abs(dx) <= STEM_HIT_PX and cy <= py <= baseline
            if not (on_head or on_stem):
                continue
            distance = abs(dx)
            if best is None or distance < best[0]:
                best = (distance, hit_id)
        return best[1] if best else None
