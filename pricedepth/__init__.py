"""Aggregated price-level market depth with change tracking."""

__version__ = "0.1.0"
__all__ = ["depth"]