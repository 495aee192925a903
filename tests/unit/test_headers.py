"""Unit tests for header utilities."""

from http_pipeline.utils.headers import (
    REDACTED,
    SENSITIVE_HEADERS,
    get_charset,
    get_header_value,
    merge_headers,
    normalize_headers,
    redact_headers,
)


class TestNormalizeHeaders:
    def test_lower_cases_keys(self):
        """Should lower-case names and leave values alone."""
        assert normalize_headers({"Content-Type": "Text/HTML", "X-Id": "A"}) == {
            "content-type": "Text/HTML",
            "x-id": "A",
        }

    def test_returns_copy(self):
        headers = {"accept": "*/*"}
        normalized = normalize_headers(headers)
        normalized["accept"] = "text/plain"
        assert headers == {"accept": "*/*"}


class TestGetHeaderValue:
    """Tests for get_header_value function."""

    def test_case_insensitive_lookup(self):
        headers = {"Content-Type": "application/json"}
        assert get_header_value(headers, "content-type") == "application/json"
        assert get_header_value(headers, "CONTENT-TYPE") == "application/json"

    def test_missing_returns_default(self):
        assert get_header_value({}, "x-missing") is None
        assert get_header_value({}, "x-missing", "fallback") == "fallback"


class TestGetCharset:
    """Tests for get_charset function."""

    def test_extracts_charset(self):
        assert get_charset({"Content-Type": "text/html; charset=UTF-8"}) == "utf-8"

    def test_quoted_charset(self):
        assert get_charset({"content-type": 'text/plain; charset="ISO-8859-1"'}) == "iso-8859-1"

    def test_charset_among_other_params(self):
        headers = {"content-type": "multipart/form-data; boundary=x; charset=utf-16"}
        assert get_charset(headers) == "utf-16"

    def test_no_charset(self):
        assert get_charset({"content-type": "application/json"}) is None
        assert get_charset({}) is None


class TestMergeHeaders:
    """Tests for merge_headers function."""

    def test_later_mapping_wins_case_insensitively(self):
        """Should override earlier values and keep the last spelling."""
        merged = merge_headers(
            {"Content-Type": "text/html", "Accept": "*/*"},
            {"content-type": "application/json"},
        )
        assert merged == {"Accept": "*/*", "content-type": "application/json"}

    def test_skips_none_and_empty(self):
        assert merge_headers(None, {}, {"a": "1"}, None) == {"a": "1"}

    def test_values_are_stringified(self):
        assert merge_headers({"x-count": 3}) == {"x-count": "3"}  # type: ignore[dict-item]

    def test_three_way_merge(self):
        merged = merge_headers({"A": "1"}, {"b": "2"}, {"a": "3", "B": "4"})
        assert merged == {"a": "3", "B": "4"}


class TestRedactHeaders:
    """Tests for redact_headers function."""

    def test_redacts_sensitive_headers(self):
        headers = {
            "Authorization": "Bearer secret",
            "Cookie": "session=abc",
            "Accept": "*/*",
        }

        redacted = redact_headers(headers)

        assert redacted == {
            "Authorization": REDACTED,
            "Cookie": REDACTED,
            "Accept": "*/*",
        }
        assert headers["Authorization"] == "Bearer secret"

    def test_all_default_sensitive_headers_redacted(self):
        redacted = redact_headers({name: "value" for name in SENSITIVE_HEADERS})
        assert set(redacted.values()) == {REDACTED}

    def test_additional_sensitive_headers(self):
        redacted = redact_headers(
            {"X-Session-Token": "t", "Accept": "*/*"},
            additional_sensitive=["x-session-token"],
        )
        assert redacted == {"X-Session-Token": REDACTED, "Accept": "*/*"}
