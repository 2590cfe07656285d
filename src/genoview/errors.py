"""Error taxonomy for the viewer engine."""

from __future__ import annotations


class GenoviewError(Exception):
    """Base class for all genoview errors."""


class InvalidRegion(GenoviewError, ValueError):
    """Malformed or out-of-bounds genomic coordinates."""


class OutOfRange(GenoviewError, ValueError):
    """Pixel/coordinate query beyond the declared bounds of a coordinate space."""


class FetchFailure(GenoviewError):
    """A DataProvider rejected a request or the request failed in transit.

    Scoped to the track that issued the request. Tracks store it and render
    an inline banner; it never propagates to sibling tracks or the store.
    """

    def __init__(self, track_id: str, message: str, cause: BaseException | None = None):
        super().__init__(f"[{track_id}] {message}")
        self.track_id = track_id
        self.message = message
        self.cause = cause
