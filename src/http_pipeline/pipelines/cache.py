"""Response caching as a pipeline.

The request hook looks the request up in a CacheStore and short-circuits the
send with a Skip on a live entry. The result hook stores cacheable results.
A TTL of zero disables both sides: nothing is ever read or written.

Rules applied when storing:
    - results served from the cache are never stored again
    - a streaming result is stored only once its body is fully buffered
    - only requests whose method is in ``methods`` are cached
    - ``can_cache(result)`` may veto any result
    - the key comes from the request as this pipeline saw it, so pipelines
      after it may rewrite the URL (e.g. to sign it) without hiding entries

Examples:
    Caching successful GET responses for five seconds::

        from http_pipeline.pipelines.cache import CachePipeline
        from http_pipeline.storage.memory import MemoryCacheStore

        cache = CachePipeline(MemoryCacheStore(), ttl_seconds=5)
        executor = Executor(HttpxTransport(), chain=[cache])

    Keying on the path only::

        cache = CachePipeline(
            MemoryCacheStore(),
            ttl_seconds=60,
            strategy=CacheStrategy.URL_WITHOUT_QUERY,
        )
"""

from collections.abc import Callable, Iterable
from contextvars import ContextVar

from http_pipeline.core.chain import Pipeline, Skip
from http_pipeline.exceptions import RequestError
from http_pipeline.models import CacheEntry, CacheStrategy, Request
from http_pipeline.observability.logging import get_logger
from http_pipeline.observability.metrics import record_cache_event
from http_pipeline.result import Result, ResultLike
from http_pipeline.storage.base import CacheStore
from http_pipeline.storage.memory import MemoryCacheStore
from http_pipeline.utils.urls import cache_key

logger = get_logger(__name__)

CanCache = Callable[[Result], bool]

CACHEABLE_METHODS = ("GET", "HEAD")


def default_can_cache(result: Result) -> bool:
    """Cache successful results only."""
    return result.is_success


class CachePipeline(Pipeline):
    """Serve repeated requests from a cache store.

    Attributes:
        store: Backing cache store.
        ttl_seconds: Lifetime of stored entries; zero disables caching.
        strategy: How the cache key is derived from the URL.
        can_cache: Predicate vetoing storage of a result.
        methods: HTTP methods eligible for caching; None allows all.
    """

    def __init__(
        self,
        store: CacheStore | None = None,
        ttl_seconds: float = 0.0,
        strategy: CacheStrategy | str = CacheStrategy.FULL_URL,
        can_cache: CanCache | None = None,
        methods: Iterable[str] | None = CACHEABLE_METHODS,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self.store: CacheStore = store if store is not None else MemoryCacheStore()
        self.ttl_seconds = ttl_seconds
        self.strategy = CacheStrategy(strategy)
        self.can_cache = can_cache or default_can_cache
        self.methods = None if methods is None else frozenset(m.upper() for m in methods)
        # Request seen by on_request in the current attempt; per task, so
        # concurrent calls through one pipeline do not interfere.
        self._seen: ContextVar[Request | None] = ContextVar(
            f"cache_request_{id(self)}", default=None
        )

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def key_for(self, url: str) -> str:
        """Cache key of ``url`` under the configured strategy."""
        return cache_key(url, self.strategy)

    def _applies_to(self, request: Request) -> bool:
        return self.enabled and (self.methods is None or request.method in self.methods)

    def resolve(self, request: Request) -> Result | None:
        """Return a cached copy of the result for ``request``, if any."""
        if not self._applies_to(request):
            return None

        key = self.key_for(request.url)
        entry = self.store.resolve(key)
        if entry is None:
            record_cache_event("miss")
            return None

        record_cache_event("hit")
        logger.debug("cache.hit", key=key)
        cached: Result = entry.result.cached_copy()
        cached.request = request
        return cached

    def store_result(self, result: Result, request: Request | None = None) -> bool:
        """Store ``result`` if it is cacheable; returns True when stored.

        Args:
            result: The result to store.
            request: Request whose URL keys the entry; defaults to
                ``result.request``.
        """
        request = request or result.request
        if not self._applies_to(request) or result.from_cache:
            return False
        if not result.is_buffered:
            return False
        if not self.can_cache(result):
            record_cache_event("veto")
            return False

        key = self.key_for(request.url)
        entry = CacheEntry(key=key, result=result.cached_copy(), ttl_seconds=self.ttl_seconds)
        self.store.store(entry)
        record_cache_event("store")
        logger.debug("cache.stored", key=key, ttl_seconds=self.ttl_seconds)
        return True

    async def on_request(self, request: Request) -> Request | Skip:
        self._seen.set(request)
        cached = self.resolve(request)
        if cached is None:
            return request
        return Skip(cached)

    async def on_result(self, result: ResultLike) -> ResultLike:
        seen = self._seen.get()
        self._seen.set(None)
        if isinstance(result, Result):
            self.store_result(result, seen)
        return result

    async def on_error(self, error: RequestError) -> None:
        self._seen.set(None)

    def clear(self) -> None:
        """Drop every cached entry."""
        self.store.clear()

    def remove(self, url: str) -> bool:
        """Drop the entry for ``url``; returns True if one existed."""
        return self.store.remove(self.key_for(url))

    def __repr__(self) -> str:
        return (
            f"CachePipeline(ttl_seconds={self.ttl_seconds}, "
            f"strategy={self.strategy.value!r})"
        )
