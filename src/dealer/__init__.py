"""Dealer engine: per-symbol market signal evaluation with threshold alerts."""

__version__ = "0.1.0"
