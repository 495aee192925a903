"""Pipeline chain: ordered middleware around every request attempt.

A pipeline implements any subset of four hooks. The base class provides
no-op defaults, so a subclass overrides only what it needs:

- ``on_request(request)`` returns the (possibly replaced) request, or a
  ``Skip`` carrying a ready-made result that short-circuits the send.
- ``on_result(result)`` returns the (possibly replaced) result.
- ``on_stream(result, stream)`` returns a byte stream wrapping ``stream``.
  It must stay lazy and pull-based and is only applied to streaming calls.
- ``on_error(error)`` reacts to the terminal error of a call.

Request and result hooks both run in registration order. A skip aborts the
remaining request hooks and the transport send; the result hooks then run
over the skipped result as usual.

Examples:
    Adding a header to every request::

        from http_pipeline.core.chain import Pipeline

        class TracingPipeline(Pipeline):
            async def on_request(self, request):
                return request.copy_with(
                    headers={**request.headers, "x-trace-id": new_trace_id()}
                )

    Evaluating a chain::

        chain = PipelineChain([TracingPipeline(), CachePipeline(store, ttl_seconds=5)])
        outcome = await chain.run_request(request)
        if isinstance(outcome, Skip):
            result = outcome.result
        else:
            result = await send(outcome.request)
"""

from collections.abc import AsyncIterator, Iterable, Iterator
from dataclasses import dataclass

from http_pipeline.exceptions import CustomError, RequestError
from http_pipeline.models import Request, StreamState
from http_pipeline.observability.logging import get_logger
from http_pipeline.result import Result, ResultLike

logger = get_logger(__name__)


@dataclass(frozen=True)
class Proceed:
    """Request hooks finished; send ``request``."""

    request: Request


@dataclass(frozen=True)
class Skip:
    """Short-circuit the send and continue with ``result``."""

    result: ResultLike


class Pipeline:
    """Base middleware with no-op hooks."""

    async def on_request(self, request: Request) -> Request | Skip:
        return request

    async def on_result(self, result: ResultLike) -> ResultLike:
        return result

    def on_stream(self, result: Result, stream: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        return stream

    async def on_error(self, error: RequestError) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PipelineChain:
    """Immutable ordered sequence of pipelines.

    Attributes:
        pipelines: The pipelines in registration order.
    """

    def __init__(self, pipelines: Iterable[Pipeline] = ()) -> None:
        self.pipelines: tuple[Pipeline, ...] = tuple(pipelines)

    def extend(self, pipelines: Iterable[Pipeline] | None) -> "PipelineChain":
        """Return a new chain with ``pipelines`` appended after this one's."""
        if not pipelines:
            return self
        return PipelineChain((*self.pipelines, *pipelines))

    def __iter__(self) -> Iterator[Pipeline]:
        return iter(self.pipelines)

    def __len__(self) -> int:
        return len(self.pipelines)

    async def run_request(self, request: Request) -> Proceed | Skip:
        """Run the request hooks in order.

        Returns:
            Proceed with the final request, or the first Skip produced.

        Raises:
            RequestError: Raised by a hook; any other exception from a hook
                is reported as CustomError.
        """
        for pipeline in self.pipelines:
            try:
                outcome = await pipeline.on_request(request)
            except RequestError:
                raise
            except Exception as e:
                raise _hook_failure(pipeline, "on_request", request, e) from e

            if isinstance(outcome, Skip):
                logger.debug(
                    "pipeline.skipped",
                    pipeline=type(pipeline).__name__,
                    method=request.method,
                    url=request.url,
                )
                return outcome
            request = outcome

        return Proceed(request)

    async def run_result(self, result: ResultLike) -> ResultLike:
        """Run the result hooks in registration order."""
        for pipeline in self.pipelines:
            try:
                result = await pipeline.on_result(result)
            except RequestError:
                raise
            except Exception as e:
                raise _hook_failure(pipeline, "on_result", result.request, e) from e
        return result

    def run_stream(self, result: Result) -> Result:
        """Wrap the live body of ``result`` through every stream hook.

        Each hook wraps the stream produced by the previous one. The returned
        sibling result owns the wrapped stream and closes the original
        connection when closed. Buffered results pass through unchanged.
        """
        if not self.pipelines or result.state is not StreamState.PENDING:
            return result

        stream = result.aiter_bytes()
        for pipeline in self.pipelines:
            try:
                stream = pipeline.on_stream(result, stream)
            except RequestError:
                raise
            except Exception as e:
                raise _hook_failure(pipeline, "on_stream", result.request, e) from e
        return result.with_stream(stream)

    async def run_error(self, error: RequestError) -> None:
        """Run every error hook; a failing hook does not stop the others."""
        for pipeline in self.pipelines:
            try:
                await pipeline.on_error(error)
            except Exception as e:
                logger.error(
                    "pipeline.error_hook_failed",
                    pipeline=type(pipeline).__name__,
                    error=str(e),
                    error_type=type(e).__name__,
                    original_error=error.message,
                )

    def __repr__(self) -> str:
        return f"PipelineChain({list(self.pipelines)!r})"


def _hook_failure(
    pipeline: Pipeline, hook: str, request: Request, error: Exception
) -> CustomError:
    return CustomError(
        request,
        f"{type(pipeline).__name__}.{hook} failed: {error}",
        cause=error,
    )
