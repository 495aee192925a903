"""Retry policy built on tenacity.

Wraps one attempt of a logical call in a bounded retry loop. An attempt is
retried when all of the following hold:

- it failed with a RequestError whose kind is retryable (cancelled,
  debounced and throttled errors never are)
- attempts remain (``max_retries`` counts retries, not the first attempt)
- the ``retry_if(error, attempt_number)`` predicate allows it
- the request body can be sent again

The delay before retry *n* is ``retry_delay_seconds * backoff_factor ** (n - 1)``.
Time spent inside attempts is accumulated, so the final result or error
reports the total latency of the call rather than that of the last attempt.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import tenacity
from tenacity import RetryCallState

from http_pipeline.exceptions import RequestError
from http_pipeline.models import ErrorKind
from http_pipeline.observability.logging import get_logger
from http_pipeline.observability.metrics import record_retry

logger = get_logger(__name__)

R = TypeVar("R")

RetryIf = Callable[[RequestError, int], bool]


def default_retry_if(error: RequestError, attempt_number: int) -> bool:
    """Retry network errors and HTTP errors with a 5xx status."""
    if error.kind is ErrorKind.NETWORK:
        return True
    if error.kind is ErrorKind.HTTP:
        status = error.status_code
        return status is not None and status >= 500
    return False


class _WaitBackoff(tenacity.wait.wait_base):
    """Wait strategy delegating to RetryPolicy.delay_for."""

    def __init__(self, policy: "RetryPolicy") -> None:
        self.policy = policy

    def __call__(self, retry_state: RetryCallState) -> float:
        return self.policy.delay_for(retry_state.attempt_number)


class RetryPolicy:
    """Bounded retry loop around a single attempt.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying).
        retry_delay_seconds: Delay before the first retry.
        backoff_factor: Multiplier applied to the delay for each later retry.
        retry_if: Predicate deciding whether an error is worth retrying.
    """

    def __init__(
        self,
        max_retries: int = 0,
        retry_delay_seconds: float = 1.0,
        backoff_factor: float = 1.0,
        retry_if: RetryIf | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the policy.

        Args:
            max_retries: Retries after the first attempt.
            retry_delay_seconds: Delay before the first retry.
            backoff_factor: Geometric delay multiplier, at least 1.
            retry_if: Predicate ``(error, attempt_number) -> bool``; defaults
                to retrying network errors and 5xx responses.
            sleep: Coroutine used for backoff waits; injectable for tests.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if retry_delay_seconds < 0:
            raise ValueError(f"retry_delay_seconds must be >= 0, got {retry_delay_seconds}")
        if backoff_factor < 1:
            raise ValueError(f"backoff_factor must be >= 1, got {backoff_factor}")

        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.backoff_factor = backoff_factor
        self.retry_if = retry_if or default_retry_if
        self._sleep = sleep

    def delay_for(self, retry_number: int) -> float:
        """Backoff delay in seconds before retry ``retry_number`` (1-based)."""
        return self.retry_delay_seconds * self.backoff_factor ** (retry_number - 1)

    def should_retry(self, error: BaseException, attempt_number: int) -> bool:
        """Decide whether the failed attempt ``attempt_number`` is retried."""
        if not isinstance(error, RequestError) or not error.retryable_kind:
            return False
        if attempt_number > self.max_retries:
            return False
        if not self.retry_if(error, attempt_number):
            return False

        if not error.request.body_is_replayable:
            logger.warning(
                "retry.refused",
                method=error.request.method,
                url=error.request.url,
                attempt=attempt_number,
                reason="request body is a single-use stream",
            )
            return False

        return True

    async def run(self, action: Callable[[], Awaitable[R]]) -> R:
        """Run ``action`` until it succeeds or the policy gives up.

        Args:
            action: Zero-argument coroutine function performing one attempt.

        Returns:
            The value of the first successful attempt, with ``elapsed_ms`` set
            to the cumulative attempt time unless it was served from a cache.

        Raises:
            RequestError: The error of the last attempt, with ``elapsed_ms``
                set to the cumulative attempt time.
        """
        elapsed_ms = 0.0

        retrying = tenacity.AsyncRetrying(
            retry=self._retry_state_predicate,
            stop=tenacity.stop_after_attempt(self.max_retries + 1),
            wait=_WaitBackoff(self),
            sleep=self._sleep,
            before_sleep=self._before_sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    started = time.perf_counter()
                    try:
                        result = await action()
                    finally:
                        elapsed_ms += (time.perf_counter() - started) * 1000
        except RequestError as e:
            e.elapsed_ms = elapsed_ms
            raise

        if not getattr(result, "from_cache", False) and hasattr(result, "elapsed_ms"):
            result.elapsed_ms = elapsed_ms
        return result

    def _retry_state_predicate(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return False
        return self.should_retry(outcome.exception(), retry_state.attempt_number)

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        assert retry_state.outcome is not None
        error = retry_state.outcome.exception()
        kind = error.kind.value if isinstance(error, RequestError) else "unknown"
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0

        logger.info(
            "retry.scheduled",
            attempt=retry_state.attempt_number,
            max_retries=self.max_retries,
            delay_seconds=delay,
            kind=kind,
            error=str(error),
        )
        record_retry(kind)

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(max_retries={self.max_retries}, "
            f"retry_delay_seconds={self.retry_delay_seconds}, "
            f"backoff_factor={self.backoff_factor})"
        )
