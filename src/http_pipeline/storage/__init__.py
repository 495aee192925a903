"""Cache stores for the request engine.

All stores implement the CacheStore protocol defined in base.py.

Available Stores:
    - MemoryCacheStore: In-memory dictionary with lazy expiry
"""

from http_pipeline.storage.base import CacheStore
from http_pipeline.storage.memory import MemoryCacheStore

__all__ = [
    "CacheStore",
    "MemoryCacheStore",
]
