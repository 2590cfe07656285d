"""Sorted-array interval index for range culling and hit testing."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Generic, TypeVar

import numpy as np

from .features import Feature

F = TypeVar("F", bound=Feature)


class FeatureIndex(Generic[F]):
    """Static interval index over features sorted by start.

    Overlap queries binary-search the sorted starts and a running maximum of
    ends, so lookups stay logarithmic plus output size as feature counts grow
    into the tens of thousands.
    """

    def __init__(self, features: Iterable[F]):
        self._features: list[F] = sorted(features, key=lambda f: (f.start, f.end))
        self._starts = np.fromiter((f.start for f in self._features), dtype=np.int64)
        self._ends = np.fromiter((f.end for f in self._features), dtype=np.int64)
        # Non-decreasing, so it can be binary-searched too
        self._max_end = (
            np.maximum.accumulate(self._ends) if len(self._ends) else np.empty(0, dtype=np.int64)
        )

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self):
        return iter(self._features)

    @property
    def features(self) -> Sequence[F]:
        return self._features

    def overlapping(self, start: int, end: int) -> list[F]:
        """Features whose span intersects ``[start, end)``, in start order."""
        if not self._features or end <= start:
            return []
        hi = int(np.searchsorted(self._starts, end, side="left"))
        lo = int(np.searchsorted(self._max_end[:hi], start, side="right"))
        if lo >= hi:
            return []
        mask = self._ends[lo:hi] > start
        return [self._features[lo + int(i)] for i in np.flatnonzero(mask)]

    def nearest(self, position: int, tolerance: int = 0) -> F | None:
        """The feature overlapping ``position`` (within ``tolerance`` bp) closest to it."""
        candidates = self.overlapping(position - tolerance, position + tolerance + 1)
        if not candidates:
            return None

        def distance(f: F) -> int:
            if f.start <= position < f.end:
                return 0
            return min(abs(f.start - position), abs(f.end - 1 - position))

        return min(candidates, key=distance)
