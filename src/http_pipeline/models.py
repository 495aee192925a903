"""Core type definitions and value models for the request engine.

This module provides the immutable data structures passed between the
client, the executor, the pipeline chain and the transport: the logical
Request, the transport-agnostic ResultSnapshot, cache entries and the
enumerations shared across the package.

Examples:
    Creating a request and deriving a modified copy::

        from http_pipeline.models import Request

        request = Request(
            method="post",
            url="https://api.example.com/payments",
            headers={"content-type": "application/json"},
            body='{"amount": 100}',
        )
        request.method
        # 'POST'

        signed = request.copy_with(headers={**request.headers, "x-signature": "abc"})

    Snapshotting a response for transfer across a worker boundary::

        snapshot = ResultSnapshot(
            status=200,
            headers={"content-type": "application/json"},
            body_b64="eyJyZXN1bHQiOiAic3VjY2VzcyJ9",
        )
        snapshot.get_body_bytes()
        # b'{"result": "success"}'
"""

import base64
import json
import shlex
import time
from collections.abc import AsyncIterable, Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from http_pipeline.cancel import CancelToken

VALID_HTTP_METHODS = {
    "GET",
    "HEAD",
    "POST",
    "PUT",
    "DELETE",
    "CONNECT",
    "OPTIONS",
    "TRACE",
    "PATCH",
}


class ErrorKind(str, Enum):
    """Classification of a failed request.

    Attributes:
        CANCELLED: The caller cancelled the request through its token.
        DEBOUNCED: A newer call to the same key superseded this one.
        THROTTLED: The call arrived before the key's cooldown elapsed.
        NETWORK: Transport, connection or timeout failure.
        HTTP: The round-trip succeeded but the status was rejected.
        CUSTOM: Raised by pipeline validation logic.
    """

    CANCELLED = "cancelled"
    DEBOUNCED = "debounced"
    THROTTLED = "throttled"
    NETWORK = "network"
    HTTP = "http"
    CUSTOM = "custom"


class StreamState(str, Enum):
    """Lifecycle of a result body.

    Attributes:
        PENDING: Live stream not yet touched by any consumer.
        STREAMING: A consumer is iterating the live chunks.
        BUFFERING: read() is draining the stream into memory.
        BUFFERED: The full body is available in memory.
        CLOSED: The stream was released before it was fully drained.
    """

    PENDING = "pending"
    STREAMING = "streaming"
    BUFFERING = "buffering"
    BUFFERED = "buffered"
    CLOSED = "closed"


class CacheStrategy(str, Enum):
    """How a cache key is derived from a request URL."""

    FULL_URL = "full_url"
    URL_WITHOUT_QUERY = "url_without_query"


class Request(BaseModel):
    """One logical HTTP call.

    Requests are immutable. Pipelines that need a different request build a
    new one with copy_with() and return it from their on_request hook.

    Attributes:
        method: Upper-case HTTP method.
        url: Absolute request URL.
        headers: Request headers.
        body: Optional body. Accepted shapes are bytes, str, a mapping of
            form fields, a (async) iterable of byte chunks, or a zero-argument
            callable returning any of these (a re-creatable body factory).
        cancel_token: Optional token used to cancel the call.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method: str = Field(..., description="HTTP method", examples=["GET", "POST"])
    url: str = Field(
        ...,
        description="Absolute request URL",
        min_length=1,
        examples=["https://api.example.com/users?page=2"],
    )
    headers: dict[str, str] = Field(default_factory=dict, description="Request headers")
    body: Any = Field(default=None, description="Request body")
    cancel_token: CancelToken | None = Field(default=None, description="Cancellation token")

    @field_validator("method", mode="before")
    @classmethod
    def validate_method(cls, v: Any) -> str:
        """Normalize the method to upper case and reject unknown verbs.

        Raises:
            ValueError: If the method is not a known HTTP method.
        """
        if not isinstance(v, str):
            raise ValueError("method must be a string")
        method = v.strip().upper()
        if method not in VALID_HTTP_METHODS:
            raise ValueError(
                f"Invalid HTTP method: {v}. "
                f"Valid methods are: {', '.join(sorted(VALID_HTTP_METHODS))}"
            )
        return method

    def copy_with(self, **overrides: Any) -> "Request":
        """Return a new request with the given fields replaced.

        Example:
            >>> request = Request(method="GET", url="https://example.com/a")
            >>> request.copy_with(url="https://example.com/b").url
            'https://example.com/b'
        """
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            raise TypeError(f"Unknown request fields: {', '.join(sorted(unknown))}")
        return self.model_copy(update=overrides)

    @property
    def body_is_replayable(self) -> bool:
        """Whether the body can be sent again on a retry.

        Single-consumption iterators and async iterators cannot be re-read.
        Bytes, strings, mappings, lists and body factories can.
        """
        body = self.body
        if body is None or callable(body):
            return True
        if isinstance(body, (bytes, bytearray, str, Mapping, list, tuple)):
            return True
        return not isinstance(body, (Iterable, AsyncIterable))

    def to_curl(self) -> str:
        """Render the request as a cURL command line.

        Streamed and factory bodies are rendered as a placeholder since they
        cannot be read without consuming them.

        Example:
            >>> Request(method="GET", url="https://example.com", headers={"a": "b"}).to_curl()
            "curl -X GET -H 'a: b' https://example.com"
        """
        parts = ["curl", "-X", self.method]
        for name, value in self.headers.items():
            parts.extend(["-H", f"{name}: {value}"])

        data = _render_body(self.body)
        if data is not None:
            parts.extend(["-d", data])

        parts.append(self.url)
        return " ".join(shlex.quote(part) for part in parts)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly description of the request."""
        return {
            "method": self.method,
            "url": self.url,
            "headers": dict(self.headers),
            "body": _render_body(self.body),
        }

    def __str__(self) -> str:
        return f"{self.method} {self.url}"


def _render_body(body: Any) -> str | None:
    if body is None:
        return None
    if isinstance(body, str):
        return body
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode("utf-8", errors="replace")
    if isinstance(body, Mapping):
        return json.dumps(dict(body), default=str)
    return "<streamed body>"


class ResultSnapshot(BaseModel):
    """Transport-agnostic, fully copyable form of a result.

    The body is base64-encoded so the snapshot serializes cleanly to JSON and
    pickles without holding any connection or stream handle. This is the only
    result form allowed to cross an offloaded-runner boundary.

    Attributes:
        status: HTTP status code.
        headers: Response headers.
        reason_phrase: Optional reason phrase from the status line.
        body_b64: Base64-encoded response body.
        elapsed_ms: Time spent obtaining the response, if measured.

    Examples:
        >>> snapshot = ResultSnapshot(status=200, headers={}, body_b64="SGVsbG8=")
        >>> snapshot.get_body_bytes()
        b'Hello'
    """

    status: int = Field(..., description="HTTP status code", ge=100, le=599)
    headers: dict[str, str] = Field(default_factory=dict, description="Response headers")
    reason_phrase: str | None = Field(default=None, description="Status reason phrase")
    body_b64: str = Field(default="", description="Base64-encoded response body")
    elapsed_ms: float | None = Field(default=None, ge=0, description="Elapsed milliseconds")

    @field_validator("body_b64")
    @classmethod
    def validate_base64(cls, v: str) -> str:
        """Validate that the body is properly base64-encoded.

        Raises:
            ValueError: If the string is not valid base64.
        """
        try:
            base64.b64decode(v, validate=True)
        except Exception as e:
            raise ValueError(f"Invalid base64 encoding: {e}") from e
        return v

    @classmethod
    def from_bytes(
        cls,
        status: int,
        headers: Mapping[str, str],
        body: bytes,
        reason_phrase: str | None = None,
        elapsed_ms: float | None = None,
    ) -> "ResultSnapshot":
        """Build a snapshot from raw body bytes."""
        return cls(
            status=status,
            headers=dict(headers),
            reason_phrase=reason_phrase,
            body_b64=base64.b64encode(body).decode("ascii"),
            elapsed_ms=elapsed_ms,
        )

    def get_body_bytes(self) -> bytes:
        """Decode and return the response body as bytes."""
        return base64.b64decode(self.body_b64)


class CacheEntry(BaseModel):
    """A cached result with its creation time and time-to-live.

    Entries are never mutated after insertion; an expired entry is evicted
    lazily the next time its key is read.

    Attributes:
        key: Cache key derived from the request URL.
        result: The cached, fully buffered result.
        created_at: Monotonic clock reading at insertion time.
        ttl_seconds: Lifetime of the entry.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str = Field(..., min_length=1)
    result: Any = Field(...)
    created_at: float = Field(default_factory=time.monotonic)
    ttl_seconds: float = Field(..., gt=0)

    def is_expired(self, now: float | None = None) -> bool:
        """Return True once the entry has outlived its TTL.

        Args:
            now: Monotonic clock reading; defaults to time.monotonic().
        """
        if now is None:
            now = time.monotonic()
        return now > self.created_at + self.ttl_seconds


