"""Headless sibling views that coordinate through the EventBus."""

from .base import SiblingView
from .matrix import MatrixGrid, SampleMatrixView
from .summary import MutationSummary, MutationSummaryView
from .table import SampleTableView

__all__ = [
    "MatrixGrid",
    "MutationSummary",
    "MutationSummaryView",
    "SampleMatrixView",
    "SampleTableView",
    "SiblingView",
]
