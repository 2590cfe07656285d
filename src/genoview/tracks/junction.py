"""Splice-junction track: one arc per donor/acceptor pair."""

from __future__ import annotations

import math

from ..core.coords import CoordinateSpace
from ..core.features import JunctionFeature, TrackKind
from ..render.surface import Surface
from .base import Track

ARC_SCALES = ("linear", "log")
ARC_HIT_TOLERANCE_PX = 3.0
ARC_LABEL_MIN_PX = 30.0


class JunctionTrack(Track):
    kind = TrackKind.JUNCTION
    feature_types = (JunctionFeature,)

    def __init__(self, *args, scale: str = "linear", **kwargs):
        super().__init__(*args, **kwargs)
        if scale not in ARC_SCALES:
            raise ValueError(f"scale must be one of {ARC_SCALES}, got '{scale}'")
        self.scale = scale

    def _transform(self, support: float) -> float:
        return math.log1p(support) if self.scale == "log" else float(support)

    def arc_height(self, support: int, max_support: int) -> float:
        """Arc apex height in px; the strongest visible junction spans the full track."""
        top = self._transform(max_support)
        if top <= 0:
            return 0.0
        return self._transform(support) / top * (self.content_height - 2)

    def _arcs(self, space: CoordinateSpace) -> list[tuple[JunctionFeature, float, float, float]]:
        """``(junction, x1, x2, height)`` for visible junctions; endpoints may be off-screen."""
        junctions = [j for j in self.visible_features() if isinstance(j, JunctionFeature)]
        max_support = max((j.support for j in junctions), default=0)
        return [
            (
                j,
                space.to_pixel_unclamped(j.start),
                space.to_pixel_unclamped(j.end),
                self.arc_height(j.support, max_support),
            )
            for j in junctions
        ]

    def draw(self, surface: Surface, space: CoordinateSpace) -> None:
        baseline = self.content_height
        for junction, x1, x2, height in self._arcs(space):
            color = "#c0392b" if junction.strand == "-" else "#2980b9"
            surface.quadratic(
                x1, x2, baseline, height, stroke=color, feature=junction.id, support=junction.support
            )
            if x2 - x1 > ARC_LABEL_MIN_PX:
                surface.text(
                    (x1 + x2) / 2, baseline - height - 2, str(junction.support),
                    anchor="middle", feature=junction.id, font_size=9,
                )

    def _hit(self, px: float, py: float, space: CoordinateSpace) -> str | None:
        baseline = self.content_height
        best: tuple[float, str] | None = None
        for junction, x1, x2, height in self._arcs(space):
            if not x1 <= px <= x2 or x2 == x1:
                continue
            t = (px - x1) / (x2 - x1)
            # Quadratic Bezier with control at 2*height peaks at exactly height
            arc_y = baseline - 4 * height * t * (1 - t)
            distance = abs(arc_y - py)
            if distance <= ARC_HIT_TOLERANCE_PX and (best is None or distance < best[0]):
                best = (distance, junction.id)
        return best[1] if best else None
