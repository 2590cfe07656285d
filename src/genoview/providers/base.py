"""DataProvider contract and the cancellation token passed through fetches."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..core.coords import Resolution
from ..core.features import Feature
from ..core.region import GenomicRegion


class CancellationToken:
    """Cooperative cancellation flag for one fetch request.

    Tracks cancel the previous token whenever they issue a new request.
    Providers may poll ``cancelled`` to skip work; nothing is forcibly
    aborted, and a cancelled request's eventual response is simply dropped.
    """

    __slots__ = ("request_id", "_cancelled")

    def __init__(self, request_id: int):
        self.request_id = request_id
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "live"
        return f"CancellationToken({self.request_id}, {state})"


@runtime_checkable
class DataProvider(Protocol):
    """Source of typed features for a region.

    Implementations may be backed by a REST API, a local index or an
    in-memory list; only the returned feature types matter. Providers may
    over-fetch: the engine discards features outside the requested region.
    """

    async def fetch(
        self,
        region: GenomicRegion,
        resolution: Resolution,
        request_id: int,
        token: CancellationToken,
    ) -> list[Feature]: ...
