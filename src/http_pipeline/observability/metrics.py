"""Prometheus metrics for the request engine.

This module provides Prometheus metrics to monitor client behavior.
Metrics include:

- Logical request counters by method and outcome
- Cumulative request duration histogram (all attempts of one call)
- Retry counters by error kind
- Cache event counters (hit, miss, store, expired, veto)
- Pending debounce timers gauge

Examples:
    Recording a completed request::

        from http_pipeline.observability.metrics import record_request

        record_request(method="GET", outcome="success", elapsed_ms=42.0)

    Recording a cache hit::

        from http_pipeline.observability.metrics import record_cache_event

        record_cache_event("hit")
"""

from prometheus_client import Counter, Gauge, Histogram

# Logical requests by outcome
# Labels: method, outcome (success or an ErrorKind value)
requests_total = Counter(
    "http_pipeline_requests_total",
    "Total number of logical requests executed",
    ["method", "outcome"],
)

# Cumulative duration across all attempts of one logical request (milliseconds)
request_duration_ms = Histogram(
    "http_pipeline_request_duration_ms",
    "Cumulative request duration in milliseconds across all attempts",
    buckets=[
        10,
        25,
        50,
        100,
        250,
        500,
        1000,
        2500,
        5000,
        10000,
        30000,
    ],
)

retries_total = Counter(
    "http_pipeline_retries_total",
    "Total number of retries scheduled",
    ["kind"],
)

cache_events_total = Counter(
    "http_pipeline_cache_events_total",
    "Cache lookups and writes by event type",
    ["event"],
)

# Armed debounce timers across all keys
debounce_pending = Gauge(
    "http_pipeline_debounce_pending",
    "Number of debounce timers currently armed",
)


def record_request(method: str, outcome: str, elapsed_ms: float | None = None) -> None:
    """Record a finished logical request.

    Args:
        method: HTTP method
        outcome: "success" or the ErrorKind value of the failure
        elapsed_ms: Cumulative duration, when measured

    Examples:
        >>> record_request("GET", "success", 12.5)
        >>> record_request("POST", "network")
    """
    requests_total.labels(method=method, outcome=outcome).inc()
    if elapsed_ms is not None:
        request_duration_ms.observe(elapsed_ms)


def record_retry(kind: str) -> None:
    """Record a scheduled retry.

    Examples:
        >>> record_retry("http")
    """
    retries_total.labels(kind=kind).inc()


def record_cache_event(event: str) -> None:
    """Record a cache event (hit, miss, store, expired, veto).

    Examples:
        >>> record_cache_event("hit")
    """
    cache_events_total.labels(event=event).inc()


def increment_debounce_pending() -> None:
    """Increment the pending debounce gauge when a timer is armed."""
    debounce_pending.inc()


def decrement_debounce_pending() -> None:
    """Decrement the pending debounce gauge when a timer fires or is dropped."""
    debounce_pending.dec()
