"""Greedy interval packing into non-overlapping rows."""

from __future__ import annotations

import heapq
from collections.abc import Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


def pack_rows(
    items: Iterable[T],
    extent: Callable[[T], tuple[int, int]],
    gap: int = 0,
) -> tuple[list[tuple[T, int]], int]:
    """Assign each item the lowest free row, in start order.

    Args:
        items: Items to place.
        extent: Returns the ``(start, end)`` span an item occupies.
        gap: Minimum spacing in bp between neighbours on one row.

    Returns:
        ``(placements, row_count)`` where placements pairs each item with
        its row, in start order.
    """
    ordered = sorted(items, key=lambda item: extent(item))
    # (row end, row number) for rows in use, plus rows freed for reuse
    busy: list[tuple[int, int]] = []
    free: list[int] = []
    placements: list[tuple[T, int]] = []
    row_count = 0

    for item in ordered:
        start, end = extent(item)
        while busy and busy[0][0] + gap <= start:
            _, row = heapq.heappop(busy)
            heapq.heappush(free, row)
        if free:
            row = heapq.heappop(free)
        else:
            row = row_count
            row_count += 1
        heapq.heappush(busy, (end, row))
        placements.append((item, row))

    return placements, row_count
