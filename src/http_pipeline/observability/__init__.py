"""Logging and metrics for the request engine.

- structlog configuration, loggers and per-call context binding
- Prometheus counters for outcomes, retries, cache events and debounce timers
"""

from http_pipeline.observability.logging import configure_logging, get_logger, request_context
from http_pipeline.observability.metrics import (
    record_cache_event,
    record_request,
    record_retry,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "request_context",
    "record_request",
    "record_retry",
    "record_cache_event",
]
