"""BAM/CRAM alignment provider; decoding is delegated to pysam."""

from __future__ import annotations

import asyncio
import logging

import numpy as np
import pysam

from ..constants import DEFAULT_FETCH_TIMEOUT_SECONDS, DEFAULT_MAX_READS
from ..core.coords import Resolution
from ..core.features import AlignmentFeature, CoverageBin, Feature, parse_cigar
from ..core.region import GenomicRegion
from .base import CancellationToken

logger = logging.getLogger(__name__)


def _keep(read: pysam.AlignedSegment, min_mapq: int) -> bool:
    return (
        read.mapping_quality >= min_mapq
        and not read.is_unmapped
        and not read.is_secondary
        and not read.is_supplementary
    )


def resolve_contig(references: tuple[str, ...] | list[str], chromosome: str) -> str:
    """Map ``chr17``-style names onto the naming used by the file (``17`` or ``chr17``).

    Raises:
        ValueError: If neither form is present in the file header.
    """
    if chromosome in references:
        return chromosome
    bare = chromosome[3:] if chromosome.startswith("chr") else chromosome
    for candidate in (bare, f"chr{bare}", "MT" if bare == "M" else None):
        if candidate and candidate in references:
            return candidate
    raise ValueError(f"Contig '{chromosome}' not found in alignment header")


def read_alignments(
    bam_path: str,
    region: GenomicRegion,
    resolution: Resolution,
    *,
    reference_path: str | None = None,
    index_filename: str | None = None,
    max_reads: int = DEFAULT_MAX_READS,
    min_mapq: int = 0,
) -> list[Feature]:
    """
    Read alignments or coverage bins for a region.

    Args:
        bam_path: Path to BAM/CRAM file (local or remote).
        region: Region to read.
        resolution: When ``aggregate`` is set, coverage bins of
            ``bin_size`` bp are returned instead of reads.
        reference_path: Path to reference FASTA (required for CRAM).
        index_filename: Path to index file (.bai/.crai).
        max_reads: Maximum reads to return (stop after this many).
        min_mapq: Minimum mapping quality filter.

    Returns:
        AlignmentFeatures, or CoverageBins when aggregating.
    """
    mode = "rc" if bam_path.endswith(".cram") else "rb"

    with pysam.AlignmentFile(
        bam_path,
        mode,  # type: ignore[arg-type]
        reference_filename=reference_path,
        index_filename=index_filename,
    ) as samfile:
        contig = resolve_contig(samfile.references, region.chromosome)

        if resolution.aggregate:
            cov_a, cov_c, cov_g, cov_t = samfile.count_coverage(
                contig,
                region.start,
                region.end,
                quality_threshold=0,
                read_callback=lambda r: _keep(r, min_mapq),
            )
            depth = np.asarray(cov_a) + np.asarray(cov_c) + np.asarray(cov_g) + np.asarray(cov_t)
            return _coverage_bins(depth, region, resolution.bin_size)

        reads: list[Feature] = []
        for read in samfile.fetch(contig, region.start, region.end):
            if not _keep(read, min_mapq):
                continue
            if len(reads) >= max_reads:
                logger.info("Read limit %d reached for %s", max_reads, region)
                break
            start = read.reference_start or 0
            end = read.reference_end if read.reference_end is not None else start + 1
            cigar = read.cigarstring or ""
            reads.append(
                AlignmentFeature(
                    id=f"{read.query_name}:{start}:{'-' if read.is_reverse else '+'}",
                    start=start,
                    end=max(end, start + 1),
                    name=read.query_name or "",
                    strand="-" if read.is_reverse else "+",
                    mapping_quality=read.mapping_quality,
                    cigar=cigar,
                    edits=parse_cigar(cigar, start, read.query_sequence),
                )
            )
        return reads


def _coverage_bins(depth: np.ndarray, region: GenomicRegion, bin_size: int) -> list[Feature]:
    bins: list[Feature] = []
    for offset in range(0, len(depth), bin_size):
        chunk = depth[offset : offset + bin_size]
        if not len(chunk):
            break
        start = region.start + offset
        bins.append(
            CoverageBin(
                id=f"coverage:{start}",
                start=start,
                end=start + len(chunk),
                depth=float(chunk.mean()),
            )
        )
    return bins


class BamAlignmentProvider:
    """DataProvider over an indexed BAM/CRAM file.

    pysam calls are blocking, so each fetch runs in a worker thread with a
    timeout.
    """

    def __init__(
        self,
        bam_path: str,
        *,
        reference_path: str | None = None,
        index_filename: str | None = None,
        max_reads: int = DEFAULT_MAX_READS,
        min_mapq: int = 0,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ):
        self.bam_path = bam_path
        self.reference_path = reference_path
        self.index_filename = index_filename
        self.max_reads = max_reads
        self.min_mapq = min_mapq
        self.timeout = timeout

    async def fetch(
        self,
        region: GenomicRegion,
        resolution: Resolution,
        request_id: int,
        token: CancellationToken,
    ) -> list[Feature]:
        if token.cancelled:
            return []
        logger.debug("Reading %s from %s (aggregate=%s)", region, self.bam_path, resolution.aggregate)
        return await asyncio.wait_for(
            asyncio.to_thread(
                read_alignments,
                self.bam_path,
                region,
                resolution,
                reference_path=self.reference_path,
                index_filename=self.index_filename,
                max_reads=self.max_reads,
                min_mapq=self.min_mapq,
            ),
            timeout=self.timeout,
        )
