"""Structured logging for the request engine.

Every module logs through structlog with dotted event names and keyword
context:

- request.completed / request.failed with method, url, status and elapsed
- retry.scheduled / retry.refused with the attempt number
- cache.hit / cache.expired with the cache key
- debounce.superseded / throttle.rejected with the coordinator key

The library never configures logging on import. Applications call
``configure_logging`` once; until then structlog's defaults apply.

While a call executes, its method and URL are bound to the structlog context
(see ``request_context``), so events from coordinators and pipelines carry
them even when the emitting code does not pass them.

Examples:
    Configure logging::

        from http_pipeline.observability.logging import configure_logging

        configure_logging(level="INFO", json_output=True)

    Output of a completed request (JSON)::

        {
            "event": "request.completed",
            "method": "GET",
            "url": "https://api.example.com/users",
            "status_code": 200,
            "elapsed_ms": 84.2,
            "timestamp": "2024-01-01T00:00:00.000000Z",
            "level": "info"
        }
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, TextIO

import structlog

if TYPE_CHECKING:
    from http_pipeline.models import Request


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines; otherwise use the console renderer
        stream: Where log lines are written; defaults to stdout

    Raises:
        ValueError: If ``level`` is not a known level name.

    Examples:
        >>> configure_logging(level="DEBUG", json_output=False)
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    output = stream or sys.stdout
    logging.basicConfig(format="%(message)s", stream=output, level=numeric_level)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=output.isatty())
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ from the calling module)
    """
    return structlog.get_logger(name)


@contextmanager
def request_context(request: "Request") -> Iterator[None]:
    """Bind ``method`` and ``url`` of ``request`` for the enclosed block.

    Values bound by an outer block are restored on exit.
    """
    with structlog.contextvars.bound_contextvars(method=request.method, url=request.url):
        yield
