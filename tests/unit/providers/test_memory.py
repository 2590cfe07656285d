"""Unit tests for the in-memory provider and the response cache."""

import pytest

from genoview.core.coords import Resolution
from genoview.core.features import Feature
from genoview.core.region import GenomicRegion
from genoview.providers import CancellationToken, DataProvider, InMemoryProvider, ResponseCache


class TestInMemoryProvider:
    """Tests for InMemoryProvider."""

    @pytest.mark.unit
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryProvider(), DataProvider)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_filters_by_region(self):
        provider = InMemoryProvider([Feature("a", 0, 100), Feature("b", 500, 600)])
        found = await provider.fetch(GenomicRegion("chr1", 50, 200), Resolution(1.0), 1, CancellationToken(1))
        assert [f.id for f in found] == ["a"]
        assert provider.requests[0][2] == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_per_chromosome(self):
        provider = InMemoryProvider({"chr1": [Feature("a", 0, 100)], "chr2": [Feature("b", 0, 100)]})
        found = await provider.fetch(GenomicRegion("chr2", 0, 1000), Resolution(1.0), 1, CancellationToken(1))
        assert [f.id for f in found] == ["b"]
        missing = await provider.fetch(GenomicRegion("chr3", 0, 1000), Resolution(1.0), 2, CancellationToken(2))
        assert missing == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_error(self):
        provider = InMemoryProvider(error=ConnectionError("refused"))
        with pytest.raises(ConnectionError):
            await provider.fetch(GenomicRegion("chr1", 0, 10), Resolution(1.0), 1, CancellationToken(1))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cancelled_token(self):
        provider = InMemoryProvider([Feature("a", 0, 100)])
        token = CancellationToken(1)
        token.cancel()
        assert await provider.fetch(GenomicRegion("chr1", 0, 10), Resolution(1.0), 1, token) == []


class TestCancellationToken:
    """Tests for CancellationToken."""

    @pytest.mark.unit
    def test_cancel(self):
        token = CancellationToken(4)
        assert not token.cancelled
        token.cancel()
        assert token.cancelled
        assert "cancelled" in repr(token)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestResponseCache:
    """Tests for ResponseCache."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_set(self):
        cache = ResponseCache(maxsize=4, ttl=60)
        await cache.set(("a",), [1])
        assert await cache.get(("a",)) == [1]
        assert await cache.get(("b",)) is None
        assert ("a",) in cache

    @pytest.mark.unit
    def test_rejects_empty_bound(self):
        with pytest.raises(ValueError, match="maxsize"):
            ResponseCache(maxsize=0)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_evicts_least_recently_used(self):
        cache = ResponseCache(maxsize=2, ttl=60)
        await cache.set(("a",), 1)
        await cache.set(("b",), 2)
        await cache.get(("a",))
        await cache.set(("c",), 3)
        assert await cache.get(("b",)) is None
        assert await cache.get(("a",)) == 1
        assert len(cache) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_expired_entries_missing(self):
        clock = FakeClock()
        cache = ResponseCache(maxsize=2, ttl=10, clock=clock)
        await cache.set(("a",), 1)
        clock.now += 9
        assert await cache.get(("a",)) == 1
        clock.now += 2
        assert ("a",) not in cache
        assert await cache.get(("a",)) is None
        assert len(cache) == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_expired_entries_evicted_before_live_ones(self):
        clock = FakeClock()
        cache = ResponseCache(maxsize=2, ttl=10, clock=clock)
        await cache.set(("old",), 1)
        clock.now += 8
        await cache.set(("live",), 2)
        await cache.get(("old",))
        clock.now += 3

        await cache.set(("new",), 3)
        assert await cache.get(("live",)) == 2
        assert await cache.get(("new",)) == 3
        assert len(cache) == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clear(self):
        cache = ResponseCache()
        await cache.set(("a",), 1)
        await cache.clear()
        assert len(cache) == 0
