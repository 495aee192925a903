"""Header manipulation utilities.

This module provides functions for normalizing, merging and redacting HTTP
headers. Request headers are merged from the client defaults and per-call
overrides; response headers are normalized to lower case; anything logged
is redacted first.
"""

from collections.abc import Iterable, Mapping

# Headers whose values must never appear in logs
SENSITIVE_HEADERS = {
    "authorization",
    "cookie",
    "proxy-authorization",
    "x-api-key",
}

REDACTED = "[REDACTED]"


def normalize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` with lower-case keys.

    Example:
        >>> normalize_headers({"Content-Type": "text/html"})
        {'content-type': 'text/html'}
    """
    return {key.lower(): value for key, value in headers.items()}


def get_header_value(
    headers: Mapping[str, str],
    header_name: str,
    default: str | None = None,
) -> str | None:
    """Get header value with case-insensitive lookup.

    Args:
        headers: Headers mapping
        header_name: Name of header to find (case-insensitive)
        default: Default value if header not found

    Returns:
        Header value or default

    Example:
        >>> headers = {"Content-Type": "application/json"}
        >>> get_header_value(headers, "content-type")
        'application/json'
        >>> get_header_value(headers, "missing", "default")
        'default'
    """
    wanted = header_name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return default


def get_charset(headers: Mapping[str, str]) -> str | None:
    """Return the charset declared in the Content-Type header, if any.

    Example:
        >>> get_charset({"content-type": "text/plain; charset=ISO-8859-1"})
        'iso-8859-1'
    """
    content_type = get_header_value(headers, "content-type")
    if not content_type:
        return None

    for param in content_type.split(";")[1:]:
        name, _, value = param.partition("=")
        if name.strip().lower() == "charset" and value.strip():
            return value.strip().strip('"').lower()
    return None


def merge_headers(*header_dicts: Mapping[str, str] | None) -> dict[str, str]:
    """Merge header mappings with case-insensitive key handling.

    Later mappings override earlier ones, and the key spelling from the last
    mapping that set a header wins. ``None`` entries are skipped.

    Example:
        >>> h1 = {"Content-Type": "text/html", "Accept": "*/*"}
        >>> h2 = {"content-type": "application/json"}
        >>> merge_headers(h1, h2)
        {'Accept': '*/*', 'content-type': 'application/json'}
    """
    canonical_keys: dict[str, str] = {}
    result: dict[str, str] = {}

    for headers in header_dicts:
        if not headers:
            continue
        for key, value in headers.items():
            key_lower = key.lower()

            old_key = canonical_keys.get(key_lower)
            if old_key is not None:
                del result[old_key]

            canonical_keys[key_lower] = key
            result[key] = str(value)

    return result


def redact_headers(
    headers: Mapping[str, str],
    additional_sensitive: Iterable[str] | None = None,
) -> dict[str, str]:
    """Return a copy of ``headers`` with credential values replaced.

    Args:
        headers: Headers to redact
        additional_sensitive: Extra header names to redact (case-insensitive)

    Example:
        >>> redact_headers({"Authorization": "Bearer abc", "Accept": "*/*"})
        {'Authorization': '[REDACTED]', 'Accept': '*/*'}
    """
    sensitive = set(SENSITIVE_HEADERS)
    if additional_sensitive:
        sensitive.update(h.lower() for h in additional_sensitive)

    return {
        key: REDACTED if key.lower() in sensitive else value for key, value in headers.items()
    }
