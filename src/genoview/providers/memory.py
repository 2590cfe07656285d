"""Provider backed by a fixed list of features."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

from ..core.coords import Resolution
from ..core.features import Feature
from ..core.region import GenomicRegion
from .base import CancellationToken

logger = logging.getLogger(__name__)


class InMemoryProvider:
    """Serve features from memory, optionally per chromosome.

    Args:
        features: Features to serve, either as one list for every chromosome
            or as a ``{chromosome: features}`` mapping.
        delay: Seconds to sleep before answering; lets callers exercise
            overlapping requests.
        error: Exception raised instead of answering.
    """

    def __init__(
        self,
        features: Iterable[Feature] | dict[str, Iterable[Feature]] = (),
        *,
        delay: float = 0.0,
        error: Exception | None = None,
    ):
        if isinstance(features, dict):
            self._by_chromosome: dict[str, list[Feature]] | None = {
                chrom: list(items) for chrom, items in features.items()
            }
            self._features: list[Feature] = []
        else:
            self._by_chromosome = None
            self._features = list(features)
        self.delay = delay
        self.error = error
        self.requests: list[tuple[GenomicRegion, Resolution, int]] = []

    def _candidates(self, chromosome: str) -> list[Feature]:
        if self._by_chromosome is None:
            return self._features
        return self._by_chromosome.get(chromosome, [])

    async def fetch(
        self,
        region: GenomicRegion,
        resolution: Resolution,
        request_id: int,
        token: CancellationToken,
    ) -> list[Feature]:
        self.requests.append((region, resolution, request_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if token.cancelled:
            logger.debug("Request %d cancelled before lookup", request_id)
            return []
        return [f for f in self._candidates(region.chromosome) if region.overlaps(f.start, f.end)]
