"""Continuous signal track drawn as a filled area."""

from __future__ import annotations

import numpy as np

from ..core.coords import CoordinateSpace, Resolution
from ..core.features import Feature, SignalFeature, TrackKind
from ..core.index import FeatureIndex
from ..core.region import GenomicRegion
from ..render.surface import Surface
from .base import Track


def rebin_signal(
    bins: list[SignalFeature], region: GenomicRegion, bin_size: int, prefix: str = "bin"
) -> list[SignalFeature]:
    """Collapse bins onto a ``bin_size`` grid anchored at ``region.start``, keeping maxima.

    Provider bins finer than one pixel are merged so every drawn bucket is
    at least a pixel wide and peaks are not lost.
    """
    if not bins or bin_size <= 1:
        return bins
    n_bins = -(-region.length // bin_size)
    maxima = np.full(n_bins, -np.inf)
    starts = np.fromiter((max(b.start, region.start) for b in bins), dtype=np.int64)
    values = np.fromiter((b.value for b in bins), dtype=np.float64)
    slots = np.clip((starts - region.start) // bin_size, 0, n_bins - 1)
    np.maximum.at(maxima, slots, values)

    out: list[SignalFeature] = []
    for i in np.flatnonzero(np.isfinite(maxima)):
        start = region.start + int(i) * bin_size
        end = min(region.end, start + bin_size)
        out.append(SignalFeature(id=f"{prefix}:{start}", start=start, end=end, value=float(maxima[i])))
    return out


class SignalTrack(Track):
    kind = TrackKind.SIGNAL
    feature_types = (SignalFeature,)

    def __init__(self, *args, fixed_scale: float | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        if fixed_scale is not None and fixed_scale <= 0:
            raise ValueError(f"fixed_scale must be positive, got {fixed_scale}")
        self.fixed_scale = fixed_scale

    def resolution_for(self, space: CoordinateSpace) -> Resolution:
        # Aggregate as soon as a pixel covers more than one base
        return space.resolution_for(1.0, min_bin_px=self.config.signal_min_bin_px)

    def layout(
        self, features: list[Feature], region: GenomicRegion, resolution: Resolution
    ) -> FeatureIndex[SignalFeature]:
        bins = [f for f in features if isinstance(f, SignalFeature)]
        if resolution.aggregate:
            bins = rebin_signal(bins, region, resolution.bin_size, prefix=self.id)
        return FeatureIndex(bins)

    def bins(self) -> list[SignalFeature]:
        if self.space is None or self._layout is None:
            return []
        region = self.space.region
        return self._layout.overlapping(region.start, region.end)

    def y_max(self) -> float:
        """Upper bound of the y axis: the fixed scale, or the visible maximum."""
        if self.fixed_scale is not None:
            return self.fixed_scale
        peak = max((b.value for b in self.bins()), default=0.0)
        return peak if peak > 0 else 1.0

    def draw(self, surface: Surface, space: CoordinateSpace) -> None:
        bins = self.bins()
        height = self.content_height
        scale = self.y_max()
        surface.text(space.pixel_width - 4, 8, f"{scale:g}", role="y-max", anchor="end", font_size=9)
        if not bins:
            return

        region = space.region
        points: list[tuple[float, float]] = [(space.project(max(region.start, bins[0].start)), height)]
        for b in bins:
            value = min(max(b.value, 0.0), scale)
            y = height - value / scale * height
            points.append((space.project(max(region.start, b.start)), y))
            points.append((space.project(min(region.end, b.end)), y))
        points.append((points[-1][0], height))
        surface.path(points, closed=True, fill="#5c9ded", stroke="#2c6fbb", role="signal")

    def _hit(self, px: float, py: float, space: CoordinateSpace) -> str | None:
        if self._layout is None:
            return None
        position = space.to_position(px)
        found = self._layout.overlapping(position, position + 1)
        return found[0].id if found else None
