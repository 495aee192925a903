"""Built-in pipelines.

Available Pipelines:
    - CachePipeline: Serve repeated requests from a cache store
    - LoggerPipeline: Structured request/result/error logging with history
    - AuthPipeline: Bearer token injection
    - ResponseValidatorPipeline: Reject results failing a validator
"""

from http_pipeline.pipelines.auth import AuthPipeline
from http_pipeline.pipelines.cache import CachePipeline
from http_pipeline.pipelines.logger import LogEvent, LoggerPipeline
from http_pipeline.pipelines.validator import ResponseValidatorPipeline

__all__ = [
    "AuthPipeline",
    "CachePipeline",
    "LogEvent",
    "LoggerPipeline",
    "ResponseValidatorPipeline",
]
