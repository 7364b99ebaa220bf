"""Event aggregation and scheduling."""

__version__ = "1.0.0"
