"""Core request-execution logic.

This package contains the orchestration layer of the engine:
- Chain: Ordered pipelines with request, result, stream and error hooks
- Debounce / Throttle: Per-key admission control
- Retry: Bounded retry loop with backoff
- Runner: Inline or thread-offloaded transport calls
- Executor: The full request lifecycle
"""

from http_pipeline.core.chain import Pipeline, PipelineChain, Proceed, Skip
from http_pipeline.core.debounce import Debouncer
from http_pipeline.core.executor import Executor
from http_pipeline.core.retry import RetryPolicy
from http_pipeline.core.runner import InlineRunner, ThreadRunner
from http_pipeline.core.throttle import Throttler

__all__ = [
    "Pipeline",
    "PipelineChain",
    "Proceed",
    "Skip",
    "Debouncer",
    "Throttler",
    "RetryPolicy",
    "InlineRunner",
    "ThreadRunner",
    "Executor",
]
