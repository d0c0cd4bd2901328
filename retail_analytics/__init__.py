"""Retail analytics aggregation engine."""

__version__ = "0.1.0"
