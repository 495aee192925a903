"""Transport protocol.

A transport performs one HTTP round-trip. It knows nothing about pipelines,
retries or caching: it sends what it is given and reports either a fully
read body or a live chunk iterator, depending on the ``stream`` flag.

Aborting an in-flight send is done by cancelling the asyncio task that
awaits it; transports must release their connection when cancelled.

Examples:
    A scripted transport for tests::

        class StaticTransport:
            async def send(self, method, url, headers, body, *, stream=False):
                return TransportResponse(status_code=200, headers={}, body=b"ok")

            async def aclose(self):
                pass
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass
class TransportResponse:
    """Raw response handed back by a transport.

    Attributes:
        status_code: HTTP status code.
        headers: Response headers.
        reason_phrase: Reason phrase from the status line, if known.
        body: Full body bytes, or a live async iterator of chunks.
        close: Coroutine function releasing the connection of a live body.
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    reason_phrase: str | None = None
    body: bytes | AsyncIterator[bytes] = b""
    close: Callable[[], Awaitable[None]] | None = None

    @property
    def is_streaming(self) -> bool:
        return not isinstance(self.body, (bytes, bytearray))


@runtime_checkable
class Transport(Protocol):
    """Protocol for HTTP transports."""

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Any,
        *,
        stream: bool = False,
    ) -> TransportResponse:
        """Send one request.

        Args:
            method: Upper-case HTTP method.
            url: Absolute URL.
            headers: Request headers.
            body: Request body in any shape accepted by Request.
            stream: Return a live chunk iterator instead of reading the body.

        Raises:
            Exception: Any transport-level failure. The executor classifies
                these as NetworkError.
        """
        ...

    async def aclose(self) -> None:
        """Release pooled connections."""
        ...
