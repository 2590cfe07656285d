"""genoview: coordinate-synchronized multi-track genomic viewer engine."""

__version__ = "0.1.0"
