"""Cache store protocol.

This module defines the interface cache backends implement to be used by
the CachePipeline. A store maps a cache key to a CacheEntry holding a fully
buffered Result together with its creation time and time-to-live.

All methods are synchronous. Lookups and writes happen inside the pipeline
hooks without suspending, so a read-then-write of one key can never
interleave with another call on the same event loop.

Examples:
    Implementing a custom store::

        from http_pipeline.models import CacheEntry
        from http_pipeline.storage.base import CacheStore

        class LRUCacheStore:
            def __init__(self, max_entries: int) -> None:
                self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
                self._max_entries = max_entries

            def resolve(self, key: str) -> CacheEntry | None:
                entry = self._entries.get(key)
                if entry is None or entry.is_expired():
                    self._entries.pop(key, None)
                    return None
                self._entries.move_to_end(key)
                return entry

            def store(self, entry: CacheEntry) -> None:
                self._entries[entry.key] = entry
                if len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)

            def remove(self, key: str) -> bool:
                return self._entries.pop(key, None) is not None

            def clear(self) -> None:
                self._entries.clear()

Expiration Handling:
    Stores evict expired entries lazily: resolve() treats an expired entry as
    absent and drops it. No background sweep is required.
"""

from typing import Protocol, runtime_checkable

from http_pipeline.models import CacheEntry


@runtime_checkable
class CacheStore(Protocol):
    """Protocol defining the interface for cache backends."""

    def resolve(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``.

        Expired entries are evicted and reported as missing.

        Args:
            key: Cache key derived from the request URL.

        Returns:
            The unexpired entry, or None.
        """
        ...

    def store(self, entry: CacheEntry) -> None:
        """Insert or replace the entry for ``entry.key``.

        Entries are never mutated after insertion.
        """
        ...

    def remove(self, key: str) -> bool:
        """Delete the entry for ``key``.

        Returns:
            True if an entry was removed.
        """
        ...

    def clear(self) -> None:
        """Delete every entry."""
        ...
