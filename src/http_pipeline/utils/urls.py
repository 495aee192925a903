"""URL construction and cache-key helpers."""

import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from http_pipeline.models import CacheStrategy

_DUPLICATE_SLASHES = re.compile(r"/{2,}")


def is_absolute(endpoint: str) -> bool:
    """Return True for ``http://`` and ``https://`` URLs."""
    return endpoint.lower().startswith(("http://", "https://"))


def join_url(base_url: str, endpoint: str) -> str:
    """Join ``endpoint`` to ``base_url``, collapsing duplicate slashes in the path.

    Absolute endpoints are returned unchanged.

    Example:
        >>> join_url("https://api.example.com/v1/", "/users")
        'https://api.example.com/v1/users'
    """
    if is_absolute(endpoint) or not base_url:
        return endpoint

    parts = urlsplit(f"{base_url.rstrip('/')}/{endpoint.lstrip('/')}")
    path = _DUPLICATE_SLASHES.sub("/", parts.path)
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def build_url(
    base_url: str,
    endpoint: str,
    query_params: Mapping[str, Any] | None = None,
) -> str:
    """Build the effective request URL.

    Query parameters are stringified and appended after any query already
    present in the endpoint. ``None`` values are dropped; list and tuple
    values become repeated parameters.

    Example:
        >>> build_url("https://api.example.com", "search?q=a", {"page": 2})
        'https://api.example.com/search?q=a&page=2'
    """
    url = join_url(base_url, endpoint)
    if not query_params:
        return url

    parts = urlsplit(url)
    pairs = parse_qsl(parts.query, keep_blank_values=True)
    for name, value in query_params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((name, _stringify(item)) for item in value)
        else:
            pairs.append((name, _stringify(value)))

    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(pairs), parts.fragment))


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def cache_key(url: str, strategy: CacheStrategy | str = CacheStrategy.FULL_URL) -> str:
    """Derive the cache key for ``url`` under ``strategy``.

    Example:
        >>> cache_key("https://example.com/a?b=1", CacheStrategy.URL_WITHOUT_QUERY)
        'https://example.com/a'
    """
    if CacheStrategy(strategy) is CacheStrategy.URL_WITHOUT_QUERY:
        parts = urlsplit(url)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))
    return url
