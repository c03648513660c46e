"""Adaptive page retrieval and per-site rendering into portable documents."""

__version__ = "0.1.0"
