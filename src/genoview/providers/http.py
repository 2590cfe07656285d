"""HTTP/JSON feature provider."""

from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any

import httpx

from ..constants import DEFAULT_CACHE_MAX_SIZE, DEFAULT_CACHE_TTL_SECONDS, DEFAULT_HTTP_TIMEOUT_SECONDS
from ..core.coords import Resolution
from ..core.features import (
    AlignmentFeature,
    CoverageBin,
    EditOp,
    Exon,
    Feature,
    GeneFeature,
    JunctionFeature,
    MatrixCell,
    MutationFeature,
    SignalFeature,
    TrackKind,
)
from ..core.region import GenomicRegion
from .base import CancellationToken
from .cache import ResponseCache

logger = logging.getLogger(__name__)


def _build(cls: type[Feature], record: dict[str, Any], **overrides: Any) -> Feature:
    """Instantiate ``cls`` from the keys of ``record`` it declares; others are ignored."""
    names = {f.name for f in fields(cls)}
    kwargs = {k: v for k, v in record.items() if k in names}
    kwargs.update(overrides)
    return cls(**kwargs)


def _decode_gene(record: dict[str, Any]) -> Feature:
    exons = [Exon(start=e["start"], end=e["end"], kind=e.get("kind", "exon")) for e in record.get("exons", [])]
    return _build(GeneFeature, record, exons=exons)


def _decode_mutation(record: dict[str, Any]) -> Feature:
    if "position" in record and "start" not in record:
        return _build(MutationFeature, record, start=record["position"], end=record["position"] + 1)
    return _build(MutationFeature, record)


def _decode_alignment(record: dict[str, Any]) -> Feature:
    if record.get("type") == "coverage":
        return _build(CoverageBin, record)
    edits = [
        EditOp(op=e["op"], start=e["start"], length=e["length"], sequence=e.get("sequence"))
        for e in record.get("edits", [])
    ]
    return _build(AlignmentFeature, record, edits=edits)


DECODERS = {
    TrackKind.GENE: _decode_gene,
    TrackKind.MUTATION: _decode_mutation,
    TrackKind.SIGNAL: lambda r: _build(SignalFeature, r),
    TrackKind.ALIGNMENT: _decode_alignment,
    TrackKind.JUNCTION: lambda r: _build(JunctionFeature, r),
    TrackKind.MATRIX: lambda r: _build(MatrixCell, r),
}


def decode_features(kind: TrackKind, payload: Any) -> list[Feature]:
    """Decode a JSON response body into typed features.

    Accepts either a bare list of records or ``{"features": [...]}``.

    Raises:
        ValueError: If the payload is not shaped like a feature list or a
            record is missing required fields.
    """
    if isinstance(payload, dict):
        payload = payload.get("features")
    if not isinstance(payload, list):
        raise ValueError(f"Expected a list of {kind.value} features")

    decode = DECODERS[kind]
    features: list[Feature] = []
    for i, record in enumerate(payload):
        if not isinstance(record, dict):
            raise ValueError(f"{kind.value} feature {i} is not an object")
        record = {"id": f"{kind.value}:{i}", **record}
        try:
            features.append(decode(record))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed {kind.value} feature {i}: {e}") from e
    return features


class HttpFeatureProvider:
    """Fetch features from ``GET {base_url}/{kind}``.

    Query parameters are ``chr``, ``start``, ``end``, ``bp_per_pixel`` and,
    when the resolution asks for summaries, ``aggregate`` and ``bin_size``.
    Responses are cached per request tuple.
    """

    def __init__(
        self,
        base_url: str,
        kind: TrackKind | str,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        cache_max_size: int = DEFAULT_CACHE_MAX_SIZE,
        headers: dict[str, str] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.kind = TrackKind(kind)
        self.timeout = timeout
        self.headers = headers or {}
        self._cache: ResponseCache[list[Feature]] = ResponseCache(maxsize=cache_max_size, ttl=cache_ttl)

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.kind.value}"

    def _params(self, region: GenomicRegion, resolution: Resolution) -> dict[str, str | int]:
        params: dict[str, str | int] = {
            "chr": region.chromosome,
            "start": region.start,
            "end": region.end,
            "bp_per_pixel": f"{resolution.bp_per_pixel:.4f}",
        }
        if resolution.aggregate:
            params["aggregate"] = "true"
            params["bin_size"] = resolution.bin_size
        return params

    async def fetch(
        self,
        region: GenomicRegion,
        resolution: Resolution,
        request_id: int,
        token: CancellationToken,
    ) -> list[Feature]:
        params = self._params(region, resolution)
        cache_key = tuple(sorted(params.items()))

        cached = await self._cache.get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s %s", self.kind.value, region)
            return list(cached)

        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            resp = await client.get(self.url, params=params)
            resp.raise_for_status()
            payload = resp.json()

        if token.cancelled:
            logger.debug("Request %d cancelled; skipping decode", request_id)
            return []

        features = decode_features(self.kind, payload)
        await self._cache.set(cache_key, features)
        logger.debug("Fetched %d %s features for %s", len(features), self.kind.value, region)
        return list(features)
