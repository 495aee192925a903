"""Executor: the request lifecycle of one logical call.

The executor composes admission control, the pipeline chain, the retry
policy, the runner and the transport:

1. Throttle admission, then debouncing, keyed by the request URL.
2. The retry policy around one attempt:
   a. request hooks, which may short-circuit with a Skip (cache hit)
   b. otherwise the transport send through the runner, with cancellation
      checkpoints before the send and after the response arrives
   c. stream hooks, for streaming calls
   d. result hooks, in registration order
   e. ``error_if(result)``; a match raises HTTPStatusError
3. On terminal failure: error hooks, then the global ``on_error`` handler,
   then the error propagates to the caller.

Examples:
    Executing a request directly::

        from http_pipeline.adapters.httpx_adapter import HttpxTransport
        from http_pipeline.core.executor import Executor
        from http_pipeline.core.retry import RetryPolicy
        from http_pipeline.models import Request

        executor = Executor(HttpxTransport(), retry_policy=RetryPolicy(max_retries=2))
        result = await executor.execute(Request(method="GET", url="https://example.com"))
"""

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable, Iterable
from functools import partial
from typing import Any

from http_pipeline.adapters.base import Transport
from http_pipeline.core.chain import Pipeline, PipelineChain, Skip
from http_pipeline.core.debounce import Debouncer
from http_pipeline.core.retry import RetryPolicy
from http_pipeline.core.runner import InlineRunner, Runner
from http_pipeline.core.throttle import Throttler
from http_pipeline.exceptions import (
    CustomError,
    HTTPStatusError,
    NetworkError,
    RequestCancelledError,
    RequestError,
)
from http_pipeline.models import Request
from http_pipeline.observability.logging import get_logger, request_context
from http_pipeline.observability.metrics import record_request
from http_pipeline.result import Result, ResultLike

logger = get_logger(__name__)

ErrorIf = Callable[[ResultLike], bool]
ErrorHandler = Callable[[RequestError], Awaitable[None] | None]


def default_error_if(result: ResultLike) -> bool:
    """Treat every non-2xx result as an error."""
    return not result.is_success


class Executor:
    """Orchestrates pipelines, admission, retries and the transport.

    The executor owns its chain, coordinators and retry policy for its whole
    lifetime; they are shared by every call made through it.

    Attributes:
        transport: Transport performing the round-trips.
        chain: Default pipeline chain.
        retry_policy: Retry loop around each attempt.
        debouncer: Per-URL debounce coordinator.
        throttler: Per-URL throttle coordinator.
        runner: Where the transport call executes.
        timeout_seconds: Deadline for one send, up to the response headers.
        error_if: Predicate rejecting results as HTTP errors.
        on_error: Global handler invoked after the error hooks.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        chain: PipelineChain | Iterable[Pipeline] = (),
        retry_policy: RetryPolicy | None = None,
        debouncer: Debouncer | None = None,
        throttler: Throttler | None = None,
        runner: Runner | None = None,
        timeout_seconds: float = 30.0,
        error_if: ErrorIf | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {timeout_seconds}")

        self.transport = transport
        self.chain = chain if isinstance(chain, PipelineChain) else PipelineChain(chain)
        self.retry_policy = retry_policy or RetryPolicy()
        self.debouncer = debouncer or Debouncer()
        self.throttler = throttler or Throttler()
        self.runner: Runner = runner or InlineRunner()
        self.timeout_seconds = timeout_seconds
        self.error_if = error_if or default_error_if
        self.on_error = on_error

    async def execute(
        self,
        request: Request,
        *,
        stream: bool = False,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        """Execute one logical call.

        Args:
            request: The request to execute.
            stream: Ask the transport for a live body stream.
            pipelines: Extra pipelines run after the default chain.

        Returns:
            The final result after all result hooks.

        Raises:
            RequestError: The terminal error of the call.
        """
        chain = self.chain.extend(pipelines)
        key = request.url

        async def retried() -> ResultLike:
            return await self.retry_policy.run(partial(self._attempt, request, chain, stream))

        with request_context(request):
            try:
                self.throttler.admit(key, request)
                result = await self.debouncer.run(key, retried, request)
            except RequestError as error:
                await self._fail(error, chain)
                raise

        logger.info(
            "request.completed",
            method=request.method,
            url=request.url,
            status_code=result.status_code,
            elapsed_ms=result.elapsed_ms,
            from_cache=getattr(result, "from_cache", False),
        )
        record_request(request.method, "success", result.elapsed_ms)
        return result

    async def _attempt(self, request: Request, chain: PipelineChain, stream: bool) -> ResultLike:
        outcome = await chain.run_request(request)

        result: ResultLike
        if isinstance(outcome, Skip):
            result = outcome.result
        else:
            sent = await self._send(outcome.request, stream)
            result = chain.run_stream(sent) if stream else sent

        try:
            result = await chain.run_result(result)
            rejected = self._rejects(result)
        except BaseException:
            await _discard(result)
            raise

        if rejected:
            if isinstance(result, Result) and not result.is_buffered:
                await _buffer_for_error(result)
            raise HTTPStatusError(result.request, response=result)  # type: ignore[arg-type]

        return result

    def _rejects(self, result: ResultLike) -> bool:
        try:
            return bool(self.error_if(result))
        except Exception as e:
            raise CustomError(result.request, f"error_if failed: {e}", cause=e) from e

    async def _send(self, request: Request, stream: bool) -> Result:
        token = request.cancel_token
        if token is not None and token.is_cancelled:
            raise RequestCancelledError(request)

        loop = asyncio.get_running_loop()
        started = time.perf_counter()
        send_task = asyncio.ensure_future(
            self.runner.run(partial(self._transport_call, stream=stream), request)
        )

        def abort() -> None:
            loop.call_soon_threadsafe(send_task.cancel)

        if token is not None:
            token.add_callback(abort)
        try:
            result = await asyncio.wait_for(send_task, self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise NetworkError(
                request, f"Request timeout after {self.timeout_seconds}s", cause=e
            ) from e
        except asyncio.CancelledError:
            if token is not None and token.is_cancelled:
                raise RequestCancelledError(request) from None
            raise
        except RequestError:
            raise
        except Exception as e:
            raise NetworkError(request, str(e) or type(e).__name__, cause=e) from e
        finally:
            if token is not None:
                token.remove_callback(abort)

        if token is not None and token.is_cancelled:
            await result.aclose()
            raise RequestCancelledError(request, "Request cancelled after response arrived")

        result.elapsed_ms = (time.perf_counter() - started) * 1000
        return result

    async def _transport_call(self, request: Request, *, stream: bool) -> Result:
        response = await self.transport.send(
            request.method,
            request.url,
            request.headers,
            request.body,
            stream=stream,
        )
        if response.is_streaming:
            return Result(
                request,
                response.status_code,
                response.headers,
                stream=response.body,  # type: ignore[arg-type]
                reason_phrase=response.reason_phrase,
                close=response.close,
            )
        return Result(
            request,
            response.status_code,
            response.headers,
            content=bytes(response.body),  # type: ignore[arg-type]
            reason_phrase=response.reason_phrase,
        )

    async def _fail(self, error: RequestError, chain: PipelineChain) -> None:
        await chain.run_error(error)

        if self.on_error is not None:
            try:
                outcome: Any = self.on_error(error)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(
                    "client.error_handler_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    original_error=error.message,
                )

        logger.warning(
            "request.failed",
            method=error.request.method,
            url=error.request.url,
            kind=error.kind.value,
            status_code=error.status_code,
            elapsed_ms=error.elapsed_ms,
            error=error.message,
        )
        record_request(error.request.method, error.kind.value, error.elapsed_ms)


async def _discard(result: ResultLike) -> None:
    if isinstance(result, Result) and not result.is_buffered:
        await result.aclose()


async def _buffer_for_error(result: Result) -> None:
    try:
        await result.read()
    except Exception as e:
        logger.debug("result.buffer_failed", url=result.request.url, error=str(e))
        await result.aclose()
