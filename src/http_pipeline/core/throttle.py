"""Throttle coordinator.

Rejects calls to a key that arrive before the cooldown since the last
admitted call has elapsed. Unlike debouncing nothing is queued: a call that
arrives too early fails immediately with RequestThrottledError, whatever
the outcome of the earlier call.
"""

import time
from collections.abc import Callable

from http_pipeline.exceptions import RequestThrottledError
from http_pipeline.models import Request
from http_pipeline.observability.logging import get_logger

logger = get_logger(__name__)


class Throttler:
    """Per-key "last executed at" tracker.

    Attributes:
        duration_seconds: Cooldown between admitted calls to one key. Zero
            disables throttling.
    """

    def __init__(
        self,
        duration_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the throttler.

        Args:
            duration_seconds: Cooldown between admitted calls to one key.
            clock: Monotonic clock; injectable for tests.
        """
        if duration_seconds < 0:
            raise ValueError(f"duration_seconds must be >= 0, got {duration_seconds}")
        self.duration_seconds = duration_seconds
        self._clock = clock
        self._last_executed_at: dict[str, float] = {}

    @property
    def enabled(self) -> bool:
        return self.duration_seconds > 0

    def admit(self, key: str, request: Request) -> None:
        """Admit a call for ``key`` or reject it.

        Raises:
            RequestThrottledError: If the previous admitted call for ``key``
                was less than ``duration_seconds`` ago.
        """
        if not self.enabled:
            return

        now = self._clock()
        self._evict_expired(now)

        last = self._last_executed_at.get(key)
        if last is not None and now - last < self.duration_seconds:
            retry_after = self.duration_seconds - (now - last)
            logger.info("throttle.rejected", key=key, retry_after_seconds=round(retry_after, 3))
            raise RequestThrottledError(
                request, f"Request throttled; retry in {retry_after:.3f}s"
            )

        # Re-insert so the dict stays ordered by admission time.
        self._last_executed_at.pop(key, None)
        self._last_executed_at[key] = now

    def _evict_expired(self, now: float) -> None:
        """Drop keys whose cooldown has elapsed, oldest first."""
        entries = self._last_executed_at
        while entries:
            oldest = next(iter(entries))
            if now - entries[oldest] < self.duration_seconds:
                break
            del entries[oldest]

    def last_executed_at(self, key: str) -> float | None:
        return self._last_executed_at.get(key)

    def clear_key(self, key: str) -> None:
        """Forget the last execution time of ``key``."""
        self._last_executed_at.pop(key, None)

    def clear(self) -> None:
        """Forget every key."""
        self._last_executed_at.clear()

    def __len__(self) -> int:
        return len(self._last_executed_at)
