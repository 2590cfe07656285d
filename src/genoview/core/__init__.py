"""Core coordinate, region and feature types."""

from .coords import CoordinateSpace, Resolution
from .features import (
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
    feature_record,
    parse_cigar,
)
from .index import FeatureIndex
from .region import Genome, GenomicRegion, normalize_chromosome, parse_region

__all__ = [
    "AlignmentFeature",
    "CoordinateSpace",
    "CoverageBin",
    "EditOp",
    "Exon",
    "Feature",
    "FeatureIndex",
    "GeneFeature",
    "Genome",
    "GenomicRegion",
    "JunctionFeature",
    "MatrixCell",
    "MutationFeature",
    "Resolution",
    "SignalFeature",
    "TrackKind",
    "feature_record",
    "normalize_chromosome",
    "parse_cigar",
    "parse_region",
]
