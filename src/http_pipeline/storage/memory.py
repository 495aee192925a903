"""In-memory cache store.

The MemoryCacheStore keeps entries in a plain dictionary owned by one
client. It is suitable for single-process applications and for tests.

Examples:
    Basic usage::

        from http_pipeline.models import CacheEntry
        from http_pipeline.storage.memory import MemoryCacheStore

        store = MemoryCacheStore()
        store.store(CacheEntry(key="https://example.com/a", result=result, ttl_seconds=5))

        entry = store.resolve("https://example.com/a")
        if entry is not None:
            cached = entry.result
"""

import time
from collections.abc import Callable

from http_pipeline.models import CacheEntry
from http_pipeline.observability.logging import get_logger
from http_pipeline.observability.metrics import record_cache_event

logger = get_logger(__name__)


class MemoryCacheStore:
    """Dictionary-backed cache store with lazy expiry.

    Attributes:
        _entries: Mapping from cache key to CacheEntry.
        _clock: Monotonic clock used for expiry checks.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize an empty store.

        Args:
            clock: Monotonic clock; injectable for tests. It must agree with
                the clock used to stamp ``CacheEntry.created_at``.
        """
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    def resolve(self, key: str) -> CacheEntry | None:
        """Return the unexpired entry for ``key``, evicting it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug("cache.expired", key=key)
            record_cache_event("expired")
            return None

        return entry

    def store(self, entry: CacheEntry) -> None:
        """Insert or replace the entry for ``entry.key``."""
        self._entries[entry.key] = entry

    def remove(self, key: str) -> bool:
        """Delete the entry for ``key``; returns True if one existed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Delete every entry."""
        self._entries.clear()

    def keys(self) -> list[str]:
        """Return the stored keys, expired or not."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
