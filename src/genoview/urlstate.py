"""Shareable query-string encoding of the viewer state.

``?chr=17&start=7565097&end=7590856&samples=S001,S004`` reproduces the same
region and selection when opened elsewhere. Sample and feature ids are
sorted so equal states always serialize to the same string. Commas and
percent signs inside an id are percent-escaped before joining, so any id
survives the round trip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import parse_qs, unquote, urlencode, urlsplit

from .core.region import Genome, GenomicRegion, normalize_chromosome
from .errors import InvalidRegion
from .state.store import CohortSnapshot, CohortStore

logger = logging.getLogger(__name__)

ID_SEPARATOR = ","


@dataclass(frozen=True)
class UrlState:
    region: GenomicRegion
    sample_ids: frozenset[str] = frozenset()
    feature_ids: frozenset[str] = frozenset()
    genome: str | None = None


def _escape_id(value: str) -> str:
    # Percent first, so the comma escape is not itself escaped
    return value.replace("%", "%25").replace(ID_SEPARATOR, "%2C")


def _join(ids: frozenset[str]) -> str:
    return ID_SEPARATOR.join(_escape_id(i) for i in sorted(ids))


def _split(value: str) -> frozenset[str]:
    return frozenset(unquote(part.strip()) for part in value.split(ID_SEPARATOR) if part.strip())


def serialize_state(snapshot: CohortSnapshot, *, include_genome: bool = False) -> str:
    """Encode region and selection as a query string (without the leading ``?``).

    Raises:
        ValueError: If the snapshot has no active region.
    """
    region = snapshot.active_region
    if region is None:
        raise ValueError("Cannot serialize a state without an active region")

    chromosome = region.chromosome[3:] if region.chromosome.startswith("chr") else region.chromosome
    params: list[tuple[str, str | int]] = [
        ("chr", chromosome),
        ("start", region.start),
        ("end", region.end),
    ]
    if snapshot.selected_sample_ids:
        params.append(("samples", _join(snapshot.selected_sample_ids)))
    if snapshot.selected_feature_ids:
        params.append(("features", _join(snapshot.selected_feature_ids)))
    if include_genome:
        params.append(("genome", snapshot.genome))
    return urlencode(params, safe=",")


def _single(params: dict[str, list[str]], key: str) -> str:
    values = params.get(key)
    if not values:
        raise InvalidRegion(f"Missing '{key}' parameter")
    if len(values) > 1:
        raise InvalidRegion(f"Parameter '{key}' given {len(values)} times")
    return values[0]


def _coordinate(params: dict[str, list[str]], key: str) -> int:
    raw = _single(params, key).replace(",", "")
    try:
        return int(raw)
    except ValueError:
        raise InvalidRegion(f"Parameter '{key}' is not an integer: '{raw}'") from None


def deserialize_state(query: str, genome: Genome) -> UrlState:
    """Decode a query string or full URL produced by ``serialize_state``.

    Raises:
        InvalidRegion: If the region parameters are missing, malformed, or
            outside ``genome``.
    """
    if "?" in query or "://" in query:
        query = urlsplit(query).query
    params = parse_qs(query.lstrip("?"), keep_blank_values=True)

    named_genome = params.get("genome", [None])[0]
    if named_genome and named_genome != genome.name:
        logger.warning("URL names genome %s but %s is loaded", named_genome, genome.name)

    region = GenomicRegion(
        normalize_chromosome(_single(params, "chr")),
        _coordinate(params, "start"),
        _coordinate(params, "end"),
    ).validate(genome)

    return UrlState(
        region=region,
        sample_ids=_split(params.get("samples", [""])[0]),
        feature_ids=_split(params.get("features", [""])[0]),
        genome=named_genome,
    )


def apply_state(store: CohortStore, state: UrlState, *, source: str = "url") -> bool:
    """Load a decoded URL state into the store.

    Returns:
        True if the region was accepted.
    """
    accepted = store.set_region(state.region, source=source)
    if accepted:
        store.set_selection(state.sample_ids, state.feature_ids, source=source)
    return accepted
