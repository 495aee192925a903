"""Request/result logging pipeline.

LoggerPipeline records a bounded history of log events and emits each one
through structlog. Events hold only plain data (strings, numbers and
redacted header maps), never connections or streams, so they can be kept,
serialized or shipped elsewhere safely.

Streaming results are logged by their metadata only. The pipeline never
drains a live body.

Examples:
    Logging with cURL reproduction::

        from http_pipeline.pipelines.logger import LoggerPipeline

        log = LoggerPipeline(include_curl=True)
        client = Client(config, pipelines=[log])

        await client.get("/users")
        log.history[-1].status_code
        # 200

    Forwarding events elsewhere::

        class AuditLog(LoggerPipeline):
            def on_log(self, event):
                audit_queue.put_nowait(event.model_dump())
"""

from collections import deque
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from http_pipeline.core.chain import Pipeline, Skip
from http_pipeline.exceptions import RequestError
from http_pipeline.models import Request
from http_pipeline.observability.logging import get_logger
from http_pipeline.result import Result, ResultLike
from http_pipeline.utils.headers import redact_headers

logger = get_logger(__name__)

MAX_LOGGED_BODY_CHARS = 2000


class LogEvent(BaseModel):
    """One logged request, result or error."""

    model_config = ConfigDict(frozen=True)

    type: Literal["request", "result", "error"]
    method: str
    url: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    status_code: int | None = None
    elapsed_ms: float | None = None
    from_cache: bool = False
    streaming: bool = False
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | None = None
    curl: str | None = None
    error_kind: str | None = None
    error: str | None = None


class LoggerPipeline(Pipeline):
    """Logs every request, result and terminal error.

    Attributes:
        enabled: When False the pipeline records and emits nothing.
        include_curl: Attach a cURL reproduction to request events.
        history: The most recent events, oldest first.
    """

    def __init__(
        self,
        enabled: bool = True,
        include_curl: bool = False,
        max_history: int = 100,
    ) -> None:
        if max_history < 1:
            raise ValueError(f"max_history must be >= 1, got {max_history}")
        self.enabled = enabled
        self.include_curl = include_curl
        self.history: deque[LogEvent] = deque(maxlen=max_history)

    def on_log(self, event: LogEvent) -> None:
        """Emit ``event``. Override to send events somewhere else."""
        level = "warning" if event.type == "error" else "info"
        getattr(logger, level)(
            f"http.{event.type}",
            **event.model_dump(exclude_none=True, exclude={"type", "timestamp"}),
        )

    def _record(self, event: LogEvent) -> None:
        self.history.append(event)
        self.on_log(event)

    async def on_request(self, request: Request) -> Request | Skip:
        if self.enabled:
            self._record(
                LogEvent(
                    type="request",
                    method=request.method,
                    url=request.url,
                    headers=redact_headers(request.headers),
                    curl=_redacted_curl(request) if self.include_curl else None,
                )
            )
        return request

    async def on_result(self, result: ResultLike) -> ResultLike:
        if self.enabled:
            self._record(_result_event(result))
        return result

    async def on_error(self, error: RequestError) -> None:
        if self.enabled:
            self._record(
                LogEvent(
                    type="error",
                    method=error.request.method,
                    url=error.request.url,
                    status_code=error.status_code,
                    elapsed_ms=error.elapsed_ms,
                    error_kind=error.kind.value,
                    error=error.message,
                )
            )

    def clear(self) -> None:
        """Forget the recorded history."""
        self.history.clear()


def _result_event(result: ResultLike) -> LogEvent:
    event = LogEvent(
        type="result",
        method=result.request.method,
        url=result.request.url,
        status_code=result.status_code,
        elapsed_ms=result.elapsed_ms,
    )
    if not isinstance(result, Result):
        return event

    body = None
    if result.is_buffered:
        body = result.content.decode("utf-8", errors="replace")[:MAX_LOGGED_BODY_CHARS]
    return event.model_copy(
        update={
            "from_cache": result.from_cache,
            "streaming": result.is_streaming,
            "headers": redact_headers(result.headers),
            "body": body,
        }
    )


def _redacted_curl(request: Request) -> str:
    return request.copy_with(headers=redact_headers(request.headers)).to_curl()
