"""Typed feature schemas returned by DataProviders, one per track kind."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class TrackKind(str, Enum):
    """Closed set of track variants."""

    GENE = "gene"
    MUTATION = "mutation"
    SIGNAL = "signal"
    ALIGNMENT = "alignment"
    JUNCTION = "junction"
    MATRIX = "matrix"


CONSEQUENCE_TYPES = (
    "missense",
    "nonsense",
    "frameshift",
    "inframe_deletion",
    "inframe_insertion",
    "splice",
    "synonymous",
    "silent",
    "other",
)


@dataclass
class Feature:
    """A genomic feature occupying the half-open span ``[start, end)``."""

    id: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Feature {self.id}: end ({self.end}) must exceed start ({self.start})")


def feature_record(feature: Feature) -> dict[str, Any]:
    """Shallow field mapping of a feature, used by filter predicates."""
    return {f.name: getattr(feature, f.name) for f in fields(feature)}


# -- Gene models -------------------------------------------------------------


@dataclass(frozen=True)
class Exon:
    start: int
    end: int
    kind: str = "exon"  # exon, cds, utr5, utr3


@dataclass
class GeneFeature(Feature):
    symbol: str = ""
    strand: str = "+"
    exons: list[Exon] = field(default_factory=list)
    biotype: str | None = None
    cds_start: int | None = None
    cds_end: int | None = None

    def introns(self) -> list[tuple[int, int]]:
        """Gaps between consecutive exons."""
        ordered = sorted(self.exons, key=lambda e: e.start)
        return [
            (left.end, right.start)
            for left, right in zip(ordered, ordered[1:])
            if right.start > left.end
        ]


# -- Point mutations ---------------------------------------------------------


@dataclass
class MutationFeature(Feature):
    sample_id: str = ""
    consequence: str = "other"
    gene: str | None = None
    aa_change: str | None = None
    ref: str | None = None
    alt: str | None = None
    count: int = 1

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.consequence not in CONSEQUENCE_TYPES:
            self.consequence = "other"
        if self.count < 1:
            raise ValueError(f"Mutation {self.id}: count must be at least 1, got {self.count}")

    @property
    def position(self) -> int:
        return self.start

    @classmethod
    def at(cls, id: str, position: int, **kwargs: Any) -> "MutationFeature":
        return cls(id=id, start=position, end=position + 1, **kwargs)


# -- Continuous signal -------------------------------------------------------


@dataclass
class SignalFeature(Feature):
    """One bin of continuous signal."""

    value: float = 0.0


# -- Aligned reads -----------------------------------------------------------

# Operations that consume query: M, I, S, =, X
QUERY_CONSUMING_OPS = frozenset("MIS=X")
# Operations that consume reference: M, D, N, =, X
REFERENCE_CONSUMING_OPS = frozenset("MDN=X")

CIGAR_PATTERN = re.compile(r"(\d+)([MIDNSHP=X])")


@dataclass(frozen=True)
class EditOp:
    """One CIGAR-like operation anchored at a reference position.

    Insertions and soft clips occupy no reference span; ``length`` is then
    the number of query bases involved.
    """

    op: str
    start: int
    length: int
    sequence: str | None = None

    @property
    def ref_length(self) -> int:
        return self.length if self.op in REFERENCE_CONSUMING_OPS else 0


def parse_cigar(cigar: str, position: int, sequence: str | None = None) -> list[EditOp]:
    """Expand a CIGAR string into EditOps anchored on the reference.

    Args:
        cigar: CIGAR string, e.g. ``5S40M2I30M``.
        position: Reference start of the first aligned base.
        sequence: Query sequence, used to attach soft-clip bases.

    Returns:
        Ordered list of EditOps; hard clips and padding are dropped.
    """
    ops: list[EditOp] = []
    query_pos = 0
    ref_cursor = position

    for length_str, op in CIGAR_PATTERN.findall(cigar):
        length = int(length_str)
        clip_seq = None
        if op == "S" and sequence and query_pos < len(sequence):
            clip_seq = sequence[query_pos : query_pos + length]

        if op not in ("H", "P"):
            ops.append(EditOp(op=op, start=ref_cursor, length=length, sequence=clip_seq))

        if op in QUERY_CONSUMING_OPS:
            query_pos += length
        if op in REFERENCE_CONSUMING_OPS:
            ref_cursor += length

    return ops


@dataclass
class AlignmentFeature(Feature):
    name: str = ""
    strand: str = "+"
    mapping_quality: int = 60
    cigar: str = ""
    edits: list[EditOp] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.edits and self.cigar:
            self.edits = parse_cigar(self.cigar, self.start)

    @property
    def soft_clips(self) -> list[EditOp]:
        return [e for e in self.edits if e.op == "S"]

    @property
    def indels(self) -> list[EditOp]:
        return [e for e in self.edits if e.op in ("I", "D")]


@dataclass
class CoverageBin(Feature):
    """Aggregated read depth over ``[start, end)``; substitutes for reads past the LOD threshold."""

    depth: float = 0.0


# -- Splice junctions --------------------------------------------------------


@dataclass
class JunctionFeature(Feature):
    support: int = 1
    strand: str = "+"

    @property
    def donor(self) -> int:
        return self.start if self.strand == "+" else self.end

    @property
    def acceptor(self) -> int:
        return self.end if self.strand == "+" else self.start


# -- Sample x feature matrix -------------------------------------------------


@dataclass
class MatrixCell(Feature):
    sample_id: str = ""
    feature_id: str = ""
    value: float = 1.0
    category: str | None = None


FEATURE_TYPES: dict[TrackKind, tuple[type[Feature], ...]] = {
    TrackKind.GENE: (GeneFeature,),
    TrackKind.MUTATION: (MutationFeature,),
    TrackKind.SIGNAL: (SignalFeature,),
    TrackKind.ALIGNMENT: (AlignmentFeature, CoverageBin),
    TrackKind.JUNCTION: (JunctionFeature,),
    TrackKind.MATRIX: (MatrixCell,),
}
