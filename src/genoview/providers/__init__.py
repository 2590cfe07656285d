"""Data providers: the protocol and its adapters."""

from .bam import BamAlignmentProvider
from .base import CancellationToken, DataProvider
from .cache import ResponseCache
from .http import HttpFeatureProvider, decode_features
from .memory import InMemoryProvider

__all__ = [
    "BamAlignmentProvider",
    "CancellationToken",
    "DataProvider",
    "HttpFeatureProvider",
    "InMemoryProvider",
    "ResponseCache",
    "decode_features",
]
