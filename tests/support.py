"""Test doubles shared by the unit and scenario tests."""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx

from http_pipeline.adapters.base import TransportResponse
from http_pipeline.adapters.httpx_adapter import HttpxTransport


async def chunked(chunks: list[bytes], delay: float = 0.0) -> AsyncIterator[bytes]:
    """Yield ``chunks`` one by one, optionally pausing between them."""
    for chunk in chunks:
        if delay:
            await asyncio.sleep(delay)
        yield chunk


class ScriptedTransport:
    """Transport replaying a script of responses and exceptions.

    Each call consumes the next script entry; the last entry repeats once
    the script is exhausted. Entries may be TransportResponse objects,
    exceptions to raise, or callables building either from the call.

    Attributes:
        calls: One dict per send, recording its arguments.
        chunk_size: Size of the chunks used when a buffered entry is served
            to a streaming call.
    """

    def __init__(
        self,
        script: list[Any],
        *,
        delay: float = 0.0,
        chunk_size: int = 4,
    ) -> None:
        self.script = list(script)
        self.delay = delay
        self.chunk_size = chunk_size
        self.calls: list[dict[str, Any]] = []
        self.closed_streams = 0
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def send(
        self,
        method: str,
        url: str,
        headers: Any,
        body: Any,
        *,
        stream: bool = False,
    ) -> TransportResponse:
        call = {
            "method": method,
            "url": url,
            "headers": dict(headers),
            "body": body,
            "stream": stream,
        }
        self.calls.append(call)

        index = min(len(self.calls), len(self.script)) - 1
        entry = self.script[index]
        if callable(entry) and not isinstance(entry, TransportResponse):
            entry = entry(call)

        if self.delay:
            await asyncio.sleep(self.delay)

        if isinstance(entry, BaseException):
            raise entry

        if stream and isinstance(entry.body, bytes):
            data = entry.body
            pieces = [data[i : i + self.chunk_size] for i in range(0, len(data), self.chunk_size)]

            async def close() -> None:
                self.closed_streams += 1

            return TransportResponse(
                status_code=entry.status_code,
                headers=entry.headers,
                reason_phrase=entry.reason_phrase,
                body=chunked(pieces),
                close=close,
            )
        return entry

    async def aclose(self) -> None:
        self.closed = True


def ok(body: bytes = b"ok", status_code: int = 200, **headers: str) -> TransportResponse:
    """Build a buffered TransportResponse."""
    return TransportResponse(
        status_code=status_code,
        headers={key.replace("_", "-"): value for key, value in headers.items()},
        reason_phrase="OK" if status_code < 400 else "Error",
        body=body,
    )


def asgi_transport(app: Any) -> HttpxTransport:
    """HttpxTransport sending to an in-process ASGI app."""
    return HttpxTransport(
        client_factory=lambda: httpx.AsyncClient(transport=httpx.ASGITransport(app=app)),
    )


async def broken(chunks: list[bytes], error: Exception) -> AsyncIterator[bytes]:
    """Yield ``chunks``, then fail with ``error`` as a dropped connection would."""
    for chunk in chunks:
        yield chunk
    raise error
