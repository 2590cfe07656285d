"""Response cache for remote providers: LRU bounded, entries expire after a TTL."""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

from ..constants import DEFAULT_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS

V = TypeVar("V")


class ResponseCache(Generic[V]):
    """Fetch results keyed by ``(chromosome, start, end, resolution...)`` tuples.

    Each entry records the deadline after which it reads as missing. Writes
    first drop expired entries and only then evict the least recently read
    one, so a full cache of stale responses never pushes out a live one.

    Args:
        maxsize: Entry limit.
        ttl: Lifetime of an entry in seconds.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        maxsize: int = DEFAULT_CACHE_MAX_SIZE,
        ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        self.maxsize = maxsize
        self.ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, V]] = OrderedDict()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry[0] > self._clock()

    async def get(self, key: Hashable) -> V | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            deadline, value = entry
            if deadline <= self._clock():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    async def set(self, key: Hashable, value: V) -> None:
        async with self._lock:
            now = self._clock()
            self._entries.pop(key, None)
            if len(self._entries) >= self.maxsize:
                self._purge(now)
            while len(self._entries) >= self.maxsize:
                self._entries.popitem(last=False)
            self._entries[key] = (now + self.ttl, value)

    def _purge(self, now: float) -> None:
        for stale in [k for k, (deadline, _) in self._entries.items() if deadline <= now]:
            del self._entries[stale]

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
