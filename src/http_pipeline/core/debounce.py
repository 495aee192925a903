"""Debounce coordinator.

Collapses a burst of calls to one key into a single execution of the last
call. Each key moves through ``Idle -> Pending -> {Fired, Superseded}``:

- A call for key K arms a timer for the debounce duration and waits.
- A newer call for K while a timer is pending cancels that timer and fails
  the previous waiter with RequestDebouncedError. Only the logical call is
  rejected; nothing already on the network is aborted.
- When the timer fires, the call still pending runs.

Per-key bookkeeping is released on every exit path: when the timer fires,
when the slot is superseded, and when the waiting caller is cancelled.
Slot reads and writes never suspend between them.

Examples:
    Debouncing search-as-you-type::

        debouncer = Debouncer(duration_seconds=0.3)

        async def search(request):
            return await debouncer.run(request.url, lambda: execute(request), request)

        # Of three calls in quick succession, only the last reaches execute();
        # the first two fail with RequestDebouncedError.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from http_pipeline.exceptions import RequestDebouncedError
from http_pipeline.models import Request
from http_pipeline.observability.logging import get_logger
from http_pipeline.observability.metrics import (
    decrement_debounce_pending,
    increment_debounce_pending,
)

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class _Slot:
    """Pending timer and completion for one key."""

    request: Request
    timer: asyncio.TimerHandle | None = None
    future: asyncio.Future[Any] = field(
        default_factory=lambda: asyncio.get_running_loop().create_future()
    )
    task: asyncio.Task[Any] | None = None


class Debouncer:
    """Per-key debounce coordinator.

    Attributes:
        duration_seconds: Quiet period before the last call runs. Zero
            disables debouncing.
    """

    def __init__(self, duration_seconds: float = 0.0) -> None:
        if duration_seconds < 0:
            raise ValueError(f"duration_seconds must be >= 0, got {duration_seconds}")
        self.duration_seconds = duration_seconds
        self._slots: dict[str, _Slot] = {}

    @property
    def enabled(self) -> bool:
        return self.duration_seconds > 0

    def pending_keys(self) -> list[str]:
        """Keys with an armed timer."""
        return [key for key, slot in self._slots.items() if slot.timer is not None]

    def __len__(self) -> int:
        return len(self._slots)

    async def run(self, key: str, fn: Callable[[], Awaitable[T]], request: Request) -> T:
        """Run ``fn`` once the key has been quiet for the debounce duration.

        Args:
            key: Debounce key, usually the effective request URL.
            fn: Zero-argument coroutine function executing the call.
            request: The request being debounced; attached to the error of
                a superseded waiter.

        Raises:
            RequestDebouncedError: If a newer call for ``key`` arrived first.
        """
        if not self.enabled:
            return await fn()

        loop = asyncio.get_running_loop()

        previous = self._slots.pop(key, None)
        if previous is not None:
            self._supersede(key, previous)

        slot = _Slot(request=request)
        slot.timer = loop.call_later(self.duration_seconds, self._fire, key, slot, fn)
        self._slots[key] = slot
        increment_debounce_pending()

        try:
            return await slot.future
        except asyncio.CancelledError:
            self._abandon(key, slot)
            raise

    def _fire(self, key: str, slot: _Slot, fn: Callable[[], Awaitable[Any]]) -> None:
        slot.timer = None
        decrement_debounce_pending()
        if self._slots.get(key) is slot:
            del self._slots[key]

        if slot.future.done():
            return
        slot.task = asyncio.ensure_future(self._execute(slot, fn))

    async def _execute(self, slot: _Slot, fn: Callable[[], Awaitable[Any]]) -> None:
        try:
            value = await fn()
        except BaseException as e:
            if not slot.future.done():
                if isinstance(e, asyncio.CancelledError):
                    slot.future.cancel()
                else:
                    slot.future.set_exception(e)
            if not isinstance(e, Exception):
                raise
        else:
            if not slot.future.done():
                slot.future.set_result(value)

    def _supersede(self, key: str, slot: _Slot) -> None:
        if slot.timer is not None:
            slot.timer.cancel()
            slot.timer = None
            decrement_debounce_pending()

        if not slot.future.done():
            slot.future.set_exception(
                RequestDebouncedError(slot.request, "Request superseded by a newer call")
            )
        logger.debug("debounce.superseded", key=key)

    def _abandon(self, key: str, slot: _Slot) -> None:
        if slot.timer is not None:
            slot.timer.cancel()
            slot.timer = None
            decrement_debounce_pending()
        if self._slots.get(key) is slot:
            del self._slots[key]
        if slot.task is not None and not slot.task.done():
            slot.task.cancel()
        if not slot.future.done():
            slot.future.cancel()

    def clear_key(self, key: str) -> None:
        """Drop the pending call for ``key``, failing its waiter as debounced."""
        slot = self._slots.pop(key, None)
        if slot is not None:
            self._supersede(key, slot)

    def clear(self) -> None:
        """Drop every pending call."""
        for key in list(self._slots):
            self.clear_key(key)
