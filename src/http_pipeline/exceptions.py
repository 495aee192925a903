"""Custom exceptions for the request engine.

This module defines the exception hierarchy used to report why a logical
request did not produce an acceptable result. Every RequestError carries the
originating Request and, where one exists, the Result that was received.

Examples:
    Handling an unacceptable status::

        from http_pipeline.exceptions import HTTPStatusError

        try:
            result = await client.get("/users/42")
        except HTTPStatusError as e:
            logger.warning("request.rejected", status=e.status_code, url=e.request.url)

    Telling rejected bursts apart from real failures::

        from http_pipeline.exceptions import RequestDebouncedError, RequestError

        try:
            result = await client.get("/search", query_params={"q": text})
        except RequestDebouncedError:
            return  # a newer keystroke superseded this call
        except RequestError as e:
            logger.error("search.failed", kind=e.kind, error=e.message)
"""

from typing import TYPE_CHECKING, Any

from http_pipeline.models import ErrorKind, Request

if TYPE_CHECKING:
    from http_pipeline.result import Result


class HTTPPipelineError(Exception):
    """Base exception for all errors raised by this package.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception with a message.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)


class RequestError(HTTPPipelineError):
    """A logical request terminated without an acceptable result.

    Subclasses fix the ``kind``; code that only needs the classification can
    catch RequestError and switch on ``kind``.

    Attributes:
        kind: The ErrorKind classification.
        request: The request that failed.
        response: The result received before failing, if any.
        cause: The underlying exception, if any.
        elapsed_ms: Cumulative time spent across all attempts, when known.
    """

    kind: ErrorKind = ErrorKind.CUSTOM

    def __init__(
        self,
        request: Request,
        message: str | None = None,
        *,
        response: "Result | None" = None,
        cause: BaseException | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            request: The request that failed.
            message: Description; defaults to a message derived from the kind.
            response: The result received before failing, if any.
            cause: The underlying exception, if any.
        """
        super().__init__(message or _DEFAULT_MESSAGES[self.kind])
        self.request = request
        self.response = response
        self.cause = cause
        self.elapsed_ms: float | None = None

    @property
    def status_code(self) -> int | None:
        """Status code of the attached response, if any."""
        if self.response is None:
            return None
        return self.response.status_code

    @property
    def retryable_kind(self) -> bool:
        """False for kinds that are never retried (cancelled, debounced, throttled)."""
        return self.kind not in (ErrorKind.CANCELLED, ErrorKind.DEBOUNCED, ErrorKind.THROTTLED)

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly summary of the error."""
        return {
            "kind": self.kind.value,
            "method": self.request.method,
            "url": self.request.url,
            "status_code": self.status_code,
            "message": self.message,
            "elapsed_ms": self.elapsed_ms,
            "cause": repr(self.cause) if self.cause is not None else None,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"request={str(self.request)!r}, message={self.message!r})"
        )


class RequestCancelledError(RequestError):
    """The request was cancelled through its CancelToken."""

    kind = ErrorKind.CANCELLED


class RequestDebouncedError(RequestError):
    """A newer call to the same key superseded this pending call."""

    kind = ErrorKind.DEBOUNCED


class RequestThrottledError(RequestError):
    """The call arrived before the key's throttle cooldown elapsed."""

    kind = ErrorKind.THROTTLED


class NetworkError(RequestError):
    """The transport failed: connection error, protocol error or timeout.

    The original transport exception is available as ``cause`` and is also
    chained as ``__cause__``.
    """

    kind = ErrorKind.NETWORK


class HTTPStatusError(RequestError):
    """The round-trip completed but the result was rejected by ``error_if``.

    The rejected result is always attached as ``response``.

    Examples:
        Raising from a validation step::

            if not result.is_success:
                raise HTTPStatusError(result.request, response=result)
    """

    kind = ErrorKind.HTTP

    def __init__(
        self,
        request: Request,
        message: str | None = None,
        *,
        response: "Result",
        cause: BaseException | None = None,
    ) -> None:
        if message is None:
            reason = response.reason_phrase or _DEFAULT_MESSAGES[ErrorKind.HTTP]
            message = f"{response.status_code} {reason}"
        super().__init__(request, message, response=response, cause=cause)


class CustomError(RequestError):
    """Raised by pipeline validation logic, or by a failing pipeline hook."""

    kind = ErrorKind.CUSTOM


class StreamConsumedError(HTTPPipelineError):
    """A live response stream was requested by a second consumer.

    A streaming result can be iterated by one consumer only. Once read() or
    aiter_bytes() has started draining it, any other attempt to attach to the
    live stream fails fast with this error instead of silently splitting or
    duplicating chunks.
    """


_DEFAULT_MESSAGES = {
    ErrorKind.CANCELLED: "Request cancelled",
    ErrorKind.DEBOUNCED: "Request debounced",
    ErrorKind.THROTTLED: "Request throttled",
    ErrorKind.NETWORK: "Network error",
    ErrorKind.HTTP: "HTTP error",
    ErrorKind.CUSTOM: "Custom error",
}
