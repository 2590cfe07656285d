"""Track kinds and the kind -> class registry."""

from typing import Any

from ..core.features import TrackKind
from ..providers.base import DataProvider
from .alignment import AlignmentTrack
from .base import FetchStatus, Track
from .gene import GeneTrack
from .junction import JunctionTrack
from .matrix import MatrixTrack
from .mutation import MutationCluster, MutationTrack
from .signal import SignalTrack

TRACK_TYPES: dict[TrackKind, type[Track]] = {
    TrackKind.GENE: GeneTrack,
    TrackKind.MUTATION: MutationTrack,
    TrackKind.SIGNAL: SignalTrack,
    TrackKind.ALIGNMENT: AlignmentTrack,
    TrackKind.JUNCTION: JunctionTrack,
    TrackKind.MATRIX: MatrixTrack,
}


def create_track(kind: TrackKind | str, id: str, provider: DataProvider, **options: Any) -> Track:
    """Instantiate the track class registered for ``kind``.

    Raises:
        ValueError: If ``kind`` is not a known track kind.
    """
    try:
        track_cls = TRACK_TYPES[TrackKind(kind)]
    except ValueError:
        raise ValueError(f"Unknown track kind '{kind}'. Known: {[k.value for k in TrackKind]}") from None
    return track_cls(id, provider, **options)


__all__ = [
    "TRACK_TYPES",
    "AlignmentTrack",
    "FetchStatus",
    "GeneTrack",
    "JunctionTrack",
    "MatrixTrack",
    "MutationCluster",
    "MutationTrack",
    "SignalTrack",
    "Track",
    "create_track",
]
