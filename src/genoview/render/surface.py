"""Display-list drawing surface.

Tracks draw into a Surface, which records primitives instead of rasterizing
them. Front ends replay the list (SVG, canvas, the MCP App viewer); tests
inspect it directly.
"""

from __future__ import annotations

import contextlib
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Primitive:
    """One recorded drawing operation in surface coordinates."""

    kind: str  # rect, line, circle, path, text
    track: str | None
    attrs: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "track": self.track, **self.attrs}


class Surface:
    """Records drawing primitives with a per-track vertical offset."""

    def __init__(self, width: int, height: int = 0):
        self.width = width
        self.height = height
        self.primitives: list[Primitive] = []
        self._track: str | None = None
        self._dy = 0.0

    @contextlib.contextmanager
    def layer(self, track_id: str, y: float, height: float) -> Iterator["Surface"]:
        """Draw the body of one track, translating local y by ``y``."""
        prev_track, prev_dy = self._track, self._dy
        self._track, self._dy = track_id, y
        self.height = max(self.height, int(y + height))
        try:
            yield self
        finally:
            self._track, self._dy = prev_track, prev_dy

    def _add(self, kind: str, **attrs: Any) -> Primitive:
        prim = Primitive(kind=kind, track=self._track, attrs=attrs)
        self.primitives.append(prim)
        return prim

    def rect(self, x: float, y: float, width: float, height: float, fill: str, **style: Any) -> Primitive:
        return self._add("rect", x=x, y=y + self._dy, width=width, height=height, fill=fill, **style)

    def line(self, x1: float, y1: float, x2: float, y2: float, stroke: str, **style: Any) -> Primitive:
        return self._add(
            "line", x1=x1, y1=y1 + self._dy, x2=x2, y2=y2 + self._dy, stroke=stroke, **style
        )

    def circle(self, cx: float, cy: float, r: float, fill: str, **style: Any) -> Primitive:
        return self._add("circle", cx=cx, cy=cy + self._dy, r=r, fill=fill, **style)

    def path(self, points: list[tuple[float, float]], *, closed: bool = False, **style: Any) -> Primitive:
        shifted = [(x, y + self._dy) for x, y in points]
        return self._add("path", points=shifted, closed=closed, **style)

    def quadratic(
        self, x1: float, x2: float, baseline: float, height: float, stroke: str, **style: Any
    ) -> Primitive:
        """Quadratic Bezier arc from ``x1`` to ``x2`` rising ``height`` above ``baseline``.

        The control point sits at twice the apex height so the curve's peak
        is exactly ``height``.
        """
        control = ((x1 + x2) / 2, baseline - 2 * height + self._dy)
        return self._add(
            "quadratic",
            x1=x1,
            x2=x2,
            y=baseline + self._dy,
            control=control,
            stroke=stroke,
            **style,
        )

    def text(self, x: float, y: float, text: str, **style: Any) -> Primitive:
        return self._add("text", x=x, y=y + self._dy, text=text, **style)

    # -- Inspection -----------------------------------------------------------

    def for_track(self, track_id: str) -> list[Primitive]:
        return [p for p in self.primitives if p.track == track_id]

    def of_kind(self, kind: str, track_id: str | None = None) -> list[Primitive]:
        return [
            p
            for p in self.primitives
            if p.kind == kind and (track_id is None or p.track == track_id)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "primitives": [p.to_dict() for p in self.primitives],
        }
