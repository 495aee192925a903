"""Utility modules for the request engine."""

from .headers import (
    SENSITIVE_HEADERS,
    get_charset,
    merge_headers,
    normalize_headers,
    redact_headers,
)
from .urls import build_url, cache_key

__all__ = [
    "normalize_headers",
    "merge_headers",
    "redact_headers",
    "get_charset",
    "build_url",
    "cache_key",
    "SENSITIVE_HEADERS",
]
