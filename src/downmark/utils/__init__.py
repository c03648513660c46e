"""Utility functions."""

from downmark.utils.url_utils import (
    ensure_scheme,
    get_hostname,
    make_absolute,
    normalize_base_url,
    validate_url,
)

__all__ = [
    "ensure_scheme",
    "get_hostname",
    "make_absolute",
    "normalize_base_url",
    "validate_url",
]
