"""Rendering targets."""

from .surface import Primitive, Surface

__all__ = ["Primitive", "Surface"]
