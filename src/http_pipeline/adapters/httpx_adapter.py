"""httpx transport adapter.

This module provides the HttpxTransport, which performs requests through an
``httpx.AsyncClient``. It translates Request bodies into httpx arguments and
httpx responses into TransportResponse objects.

Body shapes:
    - ``str``: sent as UTF-8 encoded content
    - ``bytes``: sent as-is
    - mapping: sent as URL-encoded form fields
    - list or tuple of chunks: joined and sent as content
    - other (async) iterables: streamed as chunked content
    - zero-argument callable: invoked on every attempt, the returned value
      is sent using the rules above

An AsyncClient is bound to the event loop it first runs on. When the
transport is used from another loop (the ThreadRunner runs each send on a
private loop in a worker thread) it sends through a short-lived client
created for that call instead of the shared one.

Examples:
    Using a pre-configured client::

        import httpx
        from http_pipeline.adapters.httpx_adapter import HttpxTransport

        transport = HttpxTransport(
            client_factory=lambda: httpx.AsyncClient(http2=False, verify=True),
        )

    Driving an in-process ASGI app in tests::

        transport = HttpxTransport(
            client_factory=lambda: httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
        )
"""

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable, Mapping
from typing import Any

import httpx

from http_pipeline.adapters.base import TransportResponse
from http_pipeline.observability.logging import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


def _default_client() -> httpx.AsyncClient:
    # Per-attempt deadlines are enforced by the executor.
    return httpx.AsyncClient(timeout=None)


class HttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Attributes:
        _client: Shared client, created lazily on first use.
        _loop: Event loop the shared client is bound to.
        _client_factory: Builds the shared client and per-call clients for
            foreign event loops.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            client: Shared client to use on the first event loop. Created
                from ``client_factory`` when omitted.
            client_factory: Zero-argument callable returning a new
                AsyncClient. Defaults to a client without timeouts.
        """
        self._client = client
        self._client_factory = client_factory or _default_client
        self._loop: asyncio.AbstractEventLoop | None = None

    def _client_for_current_loop(self) -> tuple[httpx.AsyncClient, bool]:
        """Return the client to use and whether it is owned by this call."""
        loop = asyncio.get_running_loop()

        if self._loop is not None and self._loop.is_closed():
            # The shared client died with its loop (e.g. a worker's asyncio.run).
            logger.debug("transport.client_rebound")
            self._client = None
            self._loop = None

        if self._client is None:
            self._client = self._client_factory()
        if self._loop is None:
            self._loop = loop

        if loop is self._loop:
            return self._client, False

        logger.debug("transport.ephemeral_client")
        return self._client_factory(), True

    async def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Any,
        *,
        stream: bool = False,
    ) -> TransportResponse:
        """Send one request through httpx.

        Args:
            method: Upper-case HTTP method.
            url: Absolute URL.
            headers: Request headers.
            body: Request body; see the module docstring for shapes.
            stream: Return a live chunk iterator instead of the read body.

        Raises:
            httpx.HTTPError: On connection, protocol or read failures.
        """
        client, owned = self._client_for_current_loop()
        request = client.build_request(method, url, headers=dict(headers), **_body_kwargs(body))

        try:
            response = await client.send(request, stream=True)
        except BaseException:
            if owned:
                await client.aclose()
            raise

        async def close() -> None:
            try:
                await response.aclose()
            finally:
                if owned:
                    await client.aclose()

        response_headers = dict(response.headers)

        if stream:
            return TransportResponse(
                status_code=response.status_code,
                headers=response_headers,
                reason_phrase=response.reason_phrase,
                body=response.aiter_bytes(),
                close=close,
            )

        try:
            content = await response.aread()
        finally:
            await close()

        return TransportResponse(
            status_code=response.status_code,
            headers=response_headers,
            reason_phrase=response.reason_phrase,
            body=content,
        )

    async def aclose(self) -> None:
        """Close the shared client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._loop = None

    def __repr__(self) -> str:
        return f"HttpxTransport(client={self._client!r})"


def _body_kwargs(body: Any) -> dict[str, Any]:
    if callable(body):
        body = body()

    if body is None:
        return {}
    if isinstance(body, str):
        return {"content": body.encode("utf-8")}
    if isinstance(body, (bytes, bytearray)):
        return {"content": bytes(body)}
    if isinstance(body, Mapping):
        return {"data": {str(key): str(value) for key, value in body.items()}}
    if isinstance(body, (list, tuple)):
        return {"content": b"".join(_as_bytes(chunk) for chunk in body)}
    if isinstance(body, AsyncIterable):
        return {"content": _encode_async(body)}
    if isinstance(body, Iterable):
        return {"content": _encode_sync(body)}

    raise TypeError(f"Unsupported request body type: {type(body).__name__}")


def _as_bytes(chunk: bytes | str) -> bytes:
    return chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)


async def _encode_async(chunks: AsyncIterable[bytes | str]) -> AsyncIterator[bytes]:
    async for chunk in chunks:
        yield _as_bytes(chunk)


async def _encode_sync(chunks: Iterable[bytes | str]) -> AsyncIterator[bytes]:
    # AsyncClient only streams async iterables.
    for chunk in chunks:
        yield _as_bytes(chunk)
