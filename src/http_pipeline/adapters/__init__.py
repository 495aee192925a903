"""Transport adapters.

Available Transports:
    - HttpxTransport: httpx.AsyncClient backed transport
"""

from http_pipeline.adapters.base import Transport, TransportResponse
from http_pipeline.adapters.httpx_adapter import HttpxTransport

__all__ = [
    "Transport",
    "TransportResponse",
    "HttpxTransport",
]
