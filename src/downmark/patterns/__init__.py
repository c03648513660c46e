"""URL patterns used to pick a renderer."""

from downmark.patterns.matcher import matches_pattern

__all__ = [
    "matches_pattern",
]
