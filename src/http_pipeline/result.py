"""Result handles over buffered and streamed response bodies.

A Result wraps the metadata of one response (status, headers, reason, the
originating request, elapsed time) and its body. The body is either already
in memory or backed by a live, single-consumer byte stream.

A streamed body is buffered lazily and at most once. Whichever accessor is
used first drives the network read:

- ``await result.read()`` drains the stream into memory and returns the bytes;
  later reads return the same bytes without touching the network.
- ``result.aiter_bytes()`` hands the live chunks to the caller while teeing
  them into the same buffer; once fully drained the bytes are available from
  ``read()`` and ``content`` as well.

Attaching a second consumer to a stream that is already being drained fails
fast with StreamConsumedError.

Examples:
    Reading a streamed body twice::

        result = await client.stream("/report.csv")
        first = await result.read()
        second = await result.read()  # same bytes, no second network read

    Consuming chunks as they arrive::

        result = await client.stream("/video.mp4")
        async for chunk in result.aiter_bytes():
            sink.write(chunk)
        result.content  # available synchronously once drained
"""

import asyncio
import copy
import json
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from http_pipeline.exceptions import (
    NetworkError,
    RequestCancelledError,
    RequestError,
    StreamConsumedError,
)
from http_pipeline.models import Request, ResultSnapshot, StreamState
from http_pipeline.utils.headers import get_charset, normalize_headers

CloseCallback = Callable[[], Awaitable[None]]


@runtime_checkable
class ResultLike(Protocol):
    """Minimal capability the executor needs from any result type.

    Pipelines may replace the Result produced by the transport with their own
    type in on_result, as long as it exposes these members.
    """

    request: Request
    elapsed_ms: float | None

    @property
    def status_code(self) -> int: ...

    @property
    def is_success(self) -> bool: ...


class Result:
    """Handle to one response, buffered or streaming.

    Attributes:
        request: The request that produced this result.
        elapsed_ms: Time spent obtaining the result. After retries this is the
            total across all attempts.
        from_cache: True when the result was served from a cache.
    """

    def __init__(
        self,
        request: Request,
        status_code: int,
        headers: Mapping[str, str] | None = None,
        *,
        content: bytes | None = None,
        stream: AsyncIterator[bytes] | None = None,
        reason_phrase: str | None = None,
        elapsed_ms: float | None = None,
        close: CloseCallback | None = None,
        from_cache: bool = False,
    ) -> None:
        """Initialize a result.

        Pass either ``content`` (buffered) or ``stream`` (streaming). With
        neither, the body is empty.

        Args:
            request: The originating request.
            status_code: HTTP status code.
            headers: Response headers; keys are normalized to lower case.
            content: Fully buffered body.
            stream: Live async iterator of body chunks.
            reason_phrase: Reason phrase from the status line.
            elapsed_ms: Time spent obtaining the response.
            close: Coroutine function releasing the underlying connection.
            from_cache: Whether the result is served from a cache.
        """
        if content is not None and stream is not None:
            raise ValueError("Pass either content or stream, not both")

        self.request = request
        self._status_code = status_code
        self._headers = normalize_headers(headers or {})
        self._reason_phrase = reason_phrase
        self.elapsed_ms = elapsed_ms
        self.from_cache = from_cache

        self._source = stream
        self._close = close
        self._closed = False
        self._buffer = bytearray()
        self._buffered_event: asyncio.Event | None = None

        if stream is None:
            self._content: bytes | None = content if content is not None else b""
            self._state = StreamState.BUFFERED
        else:
            self._content = None
            self._state = StreamState.PENDING

    @property
    def status_code(self) -> int:
        """HTTP status code."""
        return self._status_code

    @property
    def headers(self) -> dict[str, str]:
        """Response headers with lower-case keys."""
        return self._headers

    @property
    def reason_phrase(self) -> str | None:
        """Reason phrase from the status line, if the transport reported one."""
        return self._reason_phrase

    @property
    def is_success(self) -> bool:
        """True for 2xx status codes."""
        return 200 <= self._status_code <= 299

    @property
    def is_streaming(self) -> bool:
        """True when the body is backed by a live stream."""
        return self._source is not None

    @property
    def is_buffered(self) -> bool:
        """True once the full body is in memory."""
        return self._content is not None

    @property
    def state(self) -> StreamState:
        """Current body lifecycle state."""
        return self._state

    @property
    def content(self) -> bytes:
        """The buffered body.

        Raises:
            StreamConsumedError: If the body has not been fully buffered yet.
        """
        if self._content is None:
            raise StreamConsumedError(
                f"Body of {self.request} is not buffered yet (state={self._state.value}); "
                "await read() first"
            )
        return self._content

    async def read(self) -> bytes:
        """Return the full body, buffering a live stream on first use.

        Concurrent callers share a single drain of the stream.

        Raises:
            StreamConsumedError: If another consumer is iterating the live
                stream, or the stream was closed before it was drained.
            RequestCancelledError: If the request was cancelled mid-stream.
            NetworkError: If the stream failed before it was drained.
        """
        if self._content is not None:
            return self._content

        if self._state is StreamState.BUFFERING:
            assert self._buffered_event is not None
            await self._buffered_event.wait()
            if self._content is None:
                raise StreamConsumedError(f"Buffering of {self.request} failed")
            return self._content

        if self._state is not StreamState.PENDING:
            raise StreamConsumedError(
                f"Stream of {self.request} already consumed (state={self._state.value})"
            )

        self._state = StreamState.BUFFERING
        self._buffered_event = asyncio.Event()
        try:
            async for _ in self._tee():
                pass
        finally:
            self._buffered_event.set()

        return self.content

    async def text(self, encoding: str | None = None) -> str:
        """Return the body decoded as text.

        Args:
            encoding: Explicit encoding; defaults to the content-type charset
                or UTF-8.
        """
        body = await self.read()
        return body.decode(encoding or get_charset(self._headers) or "utf-8", errors="replace")

    async def json(self) -> Any:
        """Return the body parsed as JSON."""
        return json.loads(await self.read())

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Return an async iterator over the body chunks.

        For a pending stream this hands out the live chunks (buffering them
        as they pass). For a buffered body it replays the buffer.

        Raises:
            StreamConsumedError: If the live stream already has a consumer.

        Iterating raises NetworkError if the stream fails before it is drained.
        """
        if self._content is not None:
            return _replay(self._content)
        if self._state is not StreamState.PENDING:
            raise StreamConsumedError(
                f"Stream of {self.request} already consumed (state={self._state.value})"
            )
        self._state = StreamState.STREAMING
        return self._tee()

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self.aiter_bytes()

    async def _tee(self) -> AsyncIterator[bytes]:
        assert self._source is not None
        token = self.request.cancel_token
        completed = False
        try:
            async for chunk in self._source:
                if token is not None and token.is_cancelled:
                    raise RequestCancelledError(self.request, "Request cancelled while streaming")
                self._buffer.extend(chunk)
                yield chunk
            completed = True
        except RequestError:
            raise
        except Exception as e:
            # e.g. the connection dropped mid-body.
            raise NetworkError(self.request, str(e) or type(e).__name__, cause=e) from e
        finally:
            if completed:
                self._content = bytes(self._buffer)
                self._buffer = bytearray()
                self._state = StreamState.BUFFERED
            else:
                self._state = StreamState.CLOSED
            await self._release()

    def with_stream(self, stream: AsyncIterator[bytes]) -> "Result":
        """Return a sibling result whose body is ``stream``.

        The sibling shares this result's metadata and closes this result's
        connection when it is closed. Used to chain stream hooks.
        """
        sibling = copy.copy(self)
        sibling._source = stream
        sibling._content = None
        sibling._buffer = bytearray()
        sibling._buffered_event = None
        sibling._state = StreamState.PENDING
        sibling._closed = False
        sibling._close = self.aclose
        return sibling

    def cached_copy(self) -> "Result":
        """Return a buffered copy of this result flagged as served from cache.

        Raises:
            StreamConsumedError: If the body is not buffered.
        """
        content = self.content
        cached = copy.copy(self)
        cached._headers = dict(self._headers)
        cached._source = None
        cached._content = content
        cached._state = StreamState.BUFFERED
        cached._close = None
        cached.from_cache = True
        return cached

    async def to_snapshot(self) -> ResultSnapshot:
        """Drain the body and return a transport-agnostic snapshot."""
        body = await self.read()
        return ResultSnapshot.from_bytes(
            status=self._status_code,
            headers=self._headers,
            body=body,
            reason_phrase=self._reason_phrase,
            elapsed_ms=self.elapsed_ms,
        )

    @classmethod
    def from_snapshot(cls, snapshot: ResultSnapshot, request: Request) -> "Result":
        """Rebuild a buffered result from a snapshot."""
        return cls(
            request,
            snapshot.status,
            snapshot.headers,
            content=snapshot.get_body_bytes(),
            reason_phrase=snapshot.reason_phrase,
            elapsed_ms=snapshot.elapsed_ms,
        )

    async def aclose(self) -> None:
        """Release the underlying connection.

        A stream closed before being drained cannot be read afterwards.
        """
        if self._state in (StreamState.PENDING, StreamState.STREAMING):
            self._state = StreamState.CLOSED
        await self._release()

    async def _release(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._close is not None:
            await self._close()

    async def __aenter__(self) -> "Result":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly summary; the body is included only once buffered."""
        data: dict[str, Any] = {
            "request": self.request.to_dict(),
            "status_code": self._status_code,
            "is_success": self.is_success,
            "headers": dict(self._headers),
            "elapsed_ms": self.elapsed_ms,
            "from_cache": self.from_cache,
        }
        if self._content is not None:
            data["body"] = self._content.decode(
                get_charset(self._headers) or "utf-8", errors="replace"
            )
        return data

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status_code={self._status_code}, "
            f"request={str(self.request)!r}, state={self._state.value}, "
            f"elapsed_ms={self.elapsed_ms})"
        )


async def _replay(content: bytes) -> AsyncIterator[bytes]:
    if content:
        yield content
