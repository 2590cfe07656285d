"""Genomic regions and chromosome-length tables."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..constants import GENOMES
from ..errors import InvalidRegion

# Pattern for region strings (e.g., chr1:1000-2000, 17:7,565,097-7,590,856)
REGION_PATTERN = re.compile(r"^(chr)?([0-9]{1,2}|[XYM]|MT):([0-9,]{1,15})-([0-9,]{1,15})$", re.I)

# Input length limit for region strings
MAX_REGION_LENGTH = 100


def normalize_chromosome(name: str) -> str:
    """Normalize a chromosome name to the ``chrN`` form used by the genome tables.

    ``17`` -> ``chr17``, ``chrx`` -> ``chrX``, ``MT`` -> ``chrM``.
    """
    bare = name.strip()
    if bare.lower().startswith("chr"):
        bare = bare[3:]
    upper = bare.upper()
    if upper in ("X", "Y", "M"):
        return f"chr{upper}"
    if upper == "MT":
        return "chrM"
    return f"chr{bare}"


@dataclass(frozen=True)
class Genome:
    """A named assembly with its chromosome lengths."""

    name: str
    sizes: dict[str, int]

    @classmethod
    def named(cls, name: str) -> "Genome":
        try:
            return cls(name=name, sizes=GENOMES[name])
        except KeyError:
            raise InvalidRegion(f"Unknown genome '{name}'. Known: {sorted(GENOMES)}") from None

    def chromosome_length(self, chromosome: str) -> int:
        """Length of a chromosome in bp.

        Raises:
            InvalidRegion: If the chromosome is not part of this assembly.
        """
        try:
            return self.sizes[chromosome]
        except KeyError:
            raise InvalidRegion(
                f"Unknown chromosome '{chromosome}' for genome {self.name}"
            ) from None

    def whole(self, chromosome: str) -> "GenomicRegion":
        """The region spanning an entire chromosome."""
        return GenomicRegion(chromosome, 0, self.chromosome_length(chromosome))

    def __hash__(self) -> int:
        return hash(self.name)


@dataclass(frozen=True, order=True)
class GenomicRegion:
    """A 0-based half-open interval on one chromosome.

    Instances are immutable; every navigation produces a new one. Bounds
    against the chromosome length are checked by ``validate``, since the
    length depends on the genome in use.
    """

    chromosome: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if not isinstance(self.start, int) or not isinstance(self.end, int):
            raise InvalidRegion(f"Region bounds must be integers, got {self.start!r}-{self.end!r}")
        if self.start < 0:
            raise InvalidRegion(f"Start position must be non-negative, got {self.start}")
        if self.end <= self.start:
            raise InvalidRegion(f"End position ({self.end}) must be greater than start ({self.start})")

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def center(self) -> float:
        return (self.start + self.end) / 2

    def contains(self, position: int) -> bool:
        return self.start <= position < self.end

    def overlaps(self, start: int, end: int) -> bool:
        """True if the half-open span ``[start, end)`` intersects this region.

        Zero-length spans (point features) count when they fall inside.
        """
        if end <= start:
            return self.start <= start < self.end
        return start < self.end and end > self.start

    def covers(self, other: "GenomicRegion") -> bool:
        return (
            self.chromosome == other.chromosome
            and self.start <= other.start
            and other.end <= self.end
        )

    def validate(self, genome: Genome) -> "GenomicRegion":
        """Check the region against the chromosome length and return it.

        Raises:
            InvalidRegion: If the chromosome is unknown or end exceeds its length.
        """
        length = genome.chromosome_length(self.chromosome)
        if self.end > length:
            raise InvalidRegion(
                f"Region end {self.end:,} exceeds {self.chromosome} length {length:,} ({genome.name})"
            )
        return self

    def to_string(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}"

    def __str__(self) -> str:
        return self.to_string()


def parse_region(region: str, genome: Genome | None = None) -> GenomicRegion:
    """
    Parse a genomic region string into a GenomicRegion.

    Supports formats:
        - chr1:1000-2000
        - chr1:1,000-2,000
        - 1:1000-2000

    Raises:
        InvalidRegion: If the format is invalid or, when a genome is given,
            the region lies outside the chromosome.
    """
    if len(region) > MAX_REGION_LENGTH:
        raise InvalidRegion(f"Region string too long (max {MAX_REGION_LENGTH} characters)")

    match = REGION_PATTERN.match(region.strip())
    if not match:
        raise InvalidRegion(f"Invalid region format: '{region}'. Expected format: chr1:1000-2000")

    chromosome = normalize_chromosome(match.group(2))
    try:
        start = int(match.group(3).replace(",", ""))
        end = int(match.group(4).replace(",", ""))
    except ValueError as e:
        raise InvalidRegion(f"Invalid region coordinates: '{region}'") from e

    parsed = GenomicRegion(chromosome, start, end)
    if genome is not None:
        parsed.validate(genome)
    return parsed
