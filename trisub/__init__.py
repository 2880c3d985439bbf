"""Trisub: batch subtitle translation with speaker attribution."""

__version__ = "0.1.0"
