"""Aggregation services built on the domain records."""
