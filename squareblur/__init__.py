"""Pad images to a square with a blurred copy of themselves as background."""

__version__ = "0.1.0"
