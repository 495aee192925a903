"""Public client API.

The Client builds Requests from endpoints and per-call options and hands
them to an Executor configured from a ClientConfig. Every verb returns a
Result or raises a RequestError.

Examples:
    Basic usage::

        from http_pipeline import Client, ClientConfig

        async with Client(ClientConfig(base_url="https://api.example.com")) as client:
            result = await client.get("/users", query_params={"page": 2})
            users = await result.json()

    Caching, retries and logging::

        config = ClientConfig(
            base_url="https://api.example.com",
            cache_ttl_seconds=5,
            max_retries=2,
            retry_delay_seconds=0.2,
            backoff_factor=2,
        )
        client = Client(config, pipelines=[LoggerPipeline()])

    Streaming a download::

        result = await client.stream("/exports/latest.csv")
        async with result:
            async for chunk in result.aiter_bytes():
                sink.write(chunk)
"""

from collections.abc import Iterable, Mapping
from typing import Any

from http_pipeline.adapters.base import Transport
from http_pipeline.adapters.httpx_adapter import HttpxTransport
from http_pipeline.cancel import CancelToken
from http_pipeline.config import ClientConfig
from http_pipeline.core.chain import Pipeline
from http_pipeline.core.debounce import Debouncer
from http_pipeline.core.executor import ErrorHandler, ErrorIf, Executor
from http_pipeline.core.retry import RetryIf, RetryPolicy
from http_pipeline.core.runner import Runner
from http_pipeline.core.throttle import Throttler
from http_pipeline.models import Request
from http_pipeline.pipelines.cache import CachePipeline, CanCache
from http_pipeline.result import ResultLike
from http_pipeline.storage.base import CacheStore
from http_pipeline.utils.headers import merge_headers
from http_pipeline.utils.urls import build_url


class Client:
    """Asynchronous HTTP client with pipelines and request policies.

    The client owns its executor, cache, debouncer and throttler. They are
    shared by every call made through this client and by nothing else.

    Attributes:
        config: The client configuration.
        executor: The executor running every call.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        transport: Transport | None = None,
        pipelines: Iterable[Pipeline] = (),
        runner: Runner | None = None,
        cache_store: CacheStore | None = None,
        error_if: ErrorIf | None = None,
        retry_if: RetryIf | None = None,
        can_cache: CanCache | None = None,
        on_error: ErrorHandler | None = None,
    ) -> None:
        """Initialize the client.

        Predicates passed here take precedence over those in ``config``.

        Args:
            config: Client configuration; defaults to ClientConfig().
            transport: Transport to send through. Defaults to an
                HttpxTransport owned (and closed) by this client.
            pipelines: Default pipelines, run after the cache.
            runner: Where transport calls execute; defaults to inline.
            cache_store: Backing store for the cache.
            error_if: Predicate marking results as HTTP errors.
            retry_if: Predicate ``(error, attempt_number)`` deciding retries.
            can_cache: Predicate vetoing storage of a result.
            on_error: Global handler called with every terminal error.
        """
        self.config = config or ClientConfig()
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport()

        self._cache = CachePipeline(
            cache_store,
            ttl_seconds=self.config.cache_ttl_seconds,
            strategy=self.config.cache_strategy,
            can_cache=can_cache or self.config.can_cache,
        )

        self.executor = Executor(
            self._transport,
            chain=[self._cache, *pipelines],
            retry_policy=RetryPolicy(
                max_retries=self.config.max_retries,
                retry_delay_seconds=self.config.retry_delay_seconds,
                backoff_factor=self.config.backoff_factor,
                retry_if=retry_if or self.config.retry_if,
            ),
            debouncer=Debouncer(self.config.debounce_seconds),
            throttler=Throttler(self.config.throttle_seconds),
            runner=runner,
            timeout_seconds=self.config.timeout_seconds,
            error_if=error_if or self.config.error_if,
            on_error=on_error,
        )

    @property
    def cache(self) -> CachePipeline:
        return self._cache

    @property
    def debouncer(self) -> Debouncer:
        return self.executor.debouncer

    @property
    def throttler(self) -> Throttler:
        return self.executor.throttler

    def build_request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
    ) -> Request:
        """Build the Request a call would execute, without executing it."""
        return Request(
            method=method,
            url=build_url(self.config.base_url, endpoint, query_params),
            headers=merge_headers(self.config.default_headers, headers),
            body=body,
            cancel_token=cancel_token,
        )

    async def request(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
        stream: bool = False,
    ) -> ResultLike:
        """Execute a request with any method.

        Args:
            method: HTTP method.
            endpoint: Path relative to ``base_url``, or an absolute URL.
            body: Request body.
            query_params: Query parameters appended to the URL.
            headers: Headers overriding the default headers.
            cancel_token: Token cancelling the call.
            pipelines: Extra pipelines for this call only.
            stream: Return a Result backed by the live body stream.

        Raises:
            RequestError: The terminal error of the call.
        """
        request = self.build_request(
            method,
            endpoint,
            body,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
        )
        return await self.executor.execute(request, stream=stream, pipelines=pipelines)

    async def get(
        self,
        endpoint: str,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        return await self.request(
            "GET",
            endpoint,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
            pipelines=pipelines,
        )

    async def head(
        self,
        endpoint: str,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        return await self.request(
            "HEAD",
            endpoint,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
            pipelines=pipelines,
        )

    async def post(
        self,
        endpoint: str,
        body: Any = None,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        return await self.request(
            "POST",
            endpoint,
            body,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
            pipelines=pipelines,
        )

    async def put(
        self,
        endpoint: str,
        body: Any = None,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        return await self.request(
            "PUT",
            endpoint,
            body,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
            pipelines=pipelines,
        )

    async def delete(
        self,
        endpoint: str,
        body: Any = None,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        return await self.request(
            "DELETE",
            endpoint,
            body,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
            pipelines=pipelines,
        )

    async def patch(
        self,
        endpoint: str,
        body: Any = None,
        *,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        return await self.request(
            "PATCH",
            endpoint,
            body,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
            pipelines=pipelines,
        )

    async def stream(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        body: Any = None,
        query_params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        cancel_token: CancelToken | None = None,
        pipelines: Iterable[Pipeline] | None = None,
    ) -> ResultLike:
        """Execute a request whose Result is backed by the live body stream.

        The body is not read before the Result is returned: iterate it with
        ``aiter_bytes()`` or buffer it with ``read()``. Close the result (or
        use it as an async context manager) when abandoning it early.
        """
        return await self.request(
            method,
            endpoint,
            body,
            query_params=query_params,
            headers=headers,
            cancel_token=cancel_token,
            pipelines=pipelines,
            stream=True,
        )

    async def aclose(self) -> None:
        """Drop pending debounced calls and close the transport this client owns."""
        self.debouncer.clear()
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"Client(base_url={self.config.base_url!r})"
