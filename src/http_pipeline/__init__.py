"""
HTTP request-execution engine.

This package turns logical requests into results while applying pipelines,
response caching, debouncing, throttling, retries and cooperative
cancellation, over both buffered and streamed response bodies.
"""

__version__ = "0.1.0"

from http_pipeline.cancel import CancelToken
from http_pipeline.client import Client
from http_pipeline.config import ClientConfig
from http_pipeline.core.chain import Pipeline, PipelineChain, Proceed, Skip
from http_pipeline.core.executor import Executor
from http_pipeline.exceptions import (
    CustomError,
    HTTPPipelineError,
    HTTPStatusError,
    NetworkError,
    RequestCancelledError,
    RequestDebouncedError,
    RequestError,
    RequestThrottledError,
    StreamConsumedError,
)
from http_pipeline.models import CacheStrategy, ErrorKind, Request, StreamState
from http_pipeline.result import Result

__all__ = [
    "__version__",
    "CancelToken",
    "Client",
    "ClientConfig",
    "Pipeline",
    "PipelineChain",
    "Proceed",
    "Skip",
    "Executor",
    "Request",
    "Result",
    "ErrorKind",
    "StreamState",
    "CacheStrategy",
    "HTTPPipelineError",
    "RequestError",
    "RequestCancelledError",
    "RequestDebouncedError",
    "RequestThrottledError",
    "NetworkError",
    "HTTPStatusError",
    "CustomError",
    "StreamConsumedError",
]
