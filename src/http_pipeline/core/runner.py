"""Runners decide where the transport call executes.

InlineRunner awaits the send on the caller's event loop. ThreadRunner
offloads it to a worker thread with a private event loop. Nothing that holds
an open connection may cross that boundary, so the worker drains the result
into a ResultSnapshot and the caller's loop rebuilds a buffered Result from
it.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from http_pipeline.models import Request, ResultSnapshot
from http_pipeline.result import Result

SendCall = Callable[[Request], Awaitable[Result]]


@runtime_checkable
class Runner(Protocol):
    """Executes one transport call for a request."""

    async def run(self, call: SendCall, request: Request) -> Result: ...


class InlineRunner:
    """Awaits the send directly on the current event loop."""

    async def run(self, call: SendCall, request: Request) -> Result:
        return await call(request)

    def __repr__(self) -> str:
        return "InlineRunner()"


class ThreadRunner:
    """Runs the send in a worker thread on a private event loop.

    Results always come back buffered: the worker drains the body into a
    snapshot before handing it over. Streaming calls made through this runner
    therefore replay the buffered snapshot from ``aiter_bytes()``.
    """

    async def run(self, call: SendCall, request: Request) -> Result:
        snapshot = await asyncio.to_thread(asyncio.run, self._send_and_snapshot(call, request))
        return Result.from_snapshot(snapshot, request)

    @staticmethod
    async def _send_and_snapshot(call: SendCall, request: Request) -> ResultSnapshot:
        result = await call(request)
        try:
            return await result.to_snapshot()
        finally:
            await result.aclose()

    def __repr__(self) -> str:
        return "ThreadRunner()"
