"""Mapping between genomic coordinates and pixel space.

A CoordinateSpace is an immutable pairing of a GenomicRegion with a pixel
width. Navigation (zoom, pan, resize) returns a new space; nothing here
mutates or performs I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from ..constants import DEFAULT_MIN_SPAN
from ..errors import InvalidRegion, OutOfRange
from .region import Genome, GenomicRegion


@dataclass(frozen=True)
class Resolution:
    """Aggregation level a DataProvider must honour for one request.

    Attributes:
        bp_per_pixel: Base pairs covered by one pixel at the current zoom.
        aggregate: True once the kind-specific threshold is exceeded and the
            provider should return summarized features.
        bin_size: Suggested bin width in bp for binned data (always >= 1).
    """

    bp_per_pixel: float
    aggregate: bool = False
    bin_size: int = 1


@dataclass(frozen=True)
class CoordinateSpace:
    """Exact, side-effect-free genomic <-> pixel mapping."""

    region: GenomicRegion
    pixel_width: int
    genome: Genome
    min_span: int = DEFAULT_MIN_SPAN
    strict: bool = False

    def __post_init__(self) -> None:
        if self.pixel_width <= 0:
            raise ValueError(f"pixel_width must be positive, got {self.pixel_width}")
        if self.min_span < 1:
            raise ValueError(f"min_span must be at least 1, got {self.min_span}")
        self.region.validate(self.genome)

    @property
    def chromosome_length(self) -> int:
        return self.genome.chromosome_length(self.region.chromosome)

    @property
    def bp_per_pixel(self) -> float:
        return self.region.length / self.pixel_width

    @property
    def pixels_per_bp(self) -> float:
        return self.pixel_width / self.region.length

    # -- Projection ----------------------------------------------------------

    def to_pixel_unclamped(self, position: float) -> float:
        """Project any position, including far off-screen ones (arcs, edges)."""
        return (position - self.region.start) * self.pixel_width / self.region.length

    def to_pixel(self, position: float) -> float:
        """Project a genomic position to a pixel x offset.

        Raises:
            OutOfRange: If the position lies more than one region width
                outside ``[start, end]``.
        """
        span = self.region.length
        if position < self.region.start - span or position > self.region.end + span:
            raise OutOfRange(
                f"Position {position} is outside {self.region} by more than one region width"
            )
        return self.to_pixel_unclamped(position)

    def project(self, position: float) -> float:
        """Projection used by rendering paths.

        Strict spaces raise like ``to_pixel``; otherwise positions beyond the
        projectable window are clamped to its edge.
        """
        if self.strict:
            return self.to_pixel(position)
        span = self.region.length
        clamped = min(max(position, self.region.start - span), self.region.end + span)
        return self.to_pixel_unclamped(clamped)

    def to_position(self, pixel: float) -> int:
        """Map a pixel x offset back to a genomic position, clamped to the region."""
        raw = self.region.start + pixel * self.region.length / self.pixel_width
        position = int(round(raw))
        return min(max(position, self.region.start), self.region.end)

    def visible(self, start: int, end: int) -> bool:
        return self.region.overlaps(start, end)

    # -- Navigation ----------------------------------------------------------

    def _fit(self, start: int, span: int) -> GenomicRegion:
        """Build a region of ``span`` bp starting near ``start``, shifted inside the chromosome."""
        chrom_len = self.chromosome_length
        span = min(max(span, self.min_span), chrom_len)
        start = min(max(start, 0), chrom_len - span)
        return GenomicRegion(self.region.chromosome, start, start + span)

    def with_region(self, region: GenomicRegion) -> "CoordinateSpace":
        return replace(self, region=region)

    def zoom(self, factor: float, anchor_px: float) -> "CoordinateSpace":
        """Scale the span by ``factor`` keeping the position under ``anchor_px`` fixed.

        ``factor < 1`` zooms in. The span is clamped to
        ``[min_span, chromosome length]``; requests past either bound clamp
        rather than fail.
        """
        if not math.isfinite(factor) or factor <= 0:
            raise InvalidRegion(f"Zoom factor must be a positive number, got {factor}")

        anchor_px = min(max(anchor_px, 0.0), float(self.pixel_width))
        ratio = anchor_px / self.pixel_width
        anchor_pos = self.region.start + ratio * self.region.length

        new_span = int(round(self.region.length * factor))
        new_span = min(max(new_span, self.min_span), self.chromosome_length)
        new_start = int(round(anchor_pos - new_span * ratio))
        return self.with_region(self._fit(new_start, new_span))

    def pan(self, delta_px: float) -> "CoordinateSpace":
        """Translate the view by ``delta_px`` pixels.

        Positive values move toward larger coordinates. The span is kept and
        the region clamps at the chromosome boundaries.
        """
        shift = int(round(delta_px * self.bp_per_pixel))
        return self.with_region(self._fit(self.region.start + shift, self.region.length))

    def center_on(self, position: int) -> "CoordinateSpace":
        span = self.region.length
        return self.with_region(self._fit(position - span // 2, span))

    def resize(self, pixel_width: int) -> "CoordinateSpace":
        return replace(self, pixel_width=pixel_width)

    # -- Level of detail -----------------------------------------------------

    def resolution_for(self, aggregate_above_bp_per_pixel: float, min_bin_px: float = 1.0) -> Resolution:
        """Derive the Resolution for a track kind from its aggregation threshold."""
        bpp = self.bp_per_pixel
        bin_size = max(1, int(math.ceil(bpp * min_bin_px)))
        return Resolution(
            bp_per_pixel=bpp,
            aggregate=bpp > aggregate_above_bp_per_pixel,
            bin_size=bin_size,
        )
