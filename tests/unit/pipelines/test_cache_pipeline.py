"""Unit tests for CachePipeline."""

import time

import pytest
from hypothesis import given
from hypothesis import strategies as st

from http_pipeline.core.chain import Pipeline, Skip
from http_pipeline.core.executor import Executor
from http_pipeline.models import CacheStrategy, Request
from http_pipeline.pipelines.cache import CachePipeline
from http_pipeline.result import Result
from http_pipeline.storage.memory import MemoryCacheStore
from support import ScriptedTransport, chunked, ok


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def cache_with_clock(ttl=5.0, **kwargs):
    clock = FakeClock()
    return CachePipeline(MemoryCacheStore(clock=clock), ttl_seconds=ttl, **kwargs), clock


class TestStoreAndResolve:
    """Tests for the store/resolve cycle."""

    def test_miss_returns_none(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        assert cache.resolve(sample_request) is None

    def test_hit_returns_independent_cached_copy(self, make_request):
        cache = CachePipeline(ttl_seconds=5)
        first = make_request()
        result = Result(first, 200, {"etag": "v1"}, content=b"body")

        assert cache.store_result(result) is True

        second = make_request()
        cached = cache.resolve(second)
        assert cached is not None
        assert cached is not result
        assert cached.from_cache is True
        assert cached.request is second
        assert cached.content == b"body"
        assert cached.headers == {"etag": "v1"}
        assert result.from_cache is False

    def test_cached_copies_do_not_share_state(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        cache.store_result(Result(sample_request, 200, {"etag": "v1"}, content=b"body"))

        first = cache.resolve(sample_request)
        first.headers["etag"] = "tampered"

        assert cache.resolve(sample_request).headers["etag"] == "v1"

    def test_expired_entry_misses(self, sample_request):
        cache, clock = cache_with_clock(ttl=5)
        cache.store_result(Result(sample_request, 200, content=b"x"))

        # entries are stamped with time.monotonic()
        clock.now = time.monotonic()
        assert cache.resolve(sample_request) is not None

        clock.now += 5.5
        assert cache.resolve(sample_request) is None
        assert len(cache.store) == 0

    def test_remove_and_clear(self, make_request):
        cache = CachePipeline(ttl_seconds=5)
        for path in ("/a", "/b"):
            request = make_request(path=path)
            cache.store_result(Result(request, 200, content=b"x"))

        assert cache.remove("https://api.test/a") is True
        assert cache.resolve(make_request(path="/a")) is None

        cache.clear()
        assert cache.resolve(make_request(path="/b")) is None


class TestEligibility:
    """Tests for what gets cached."""

    def test_zero_ttl_disables_reads_and_writes(self, sample_request):
        cache = CachePipeline(ttl_seconds=0)
        assert cache.enabled is False
        assert cache.store_result(Result(sample_request, 200, content=b"x")) is False
        assert len(cache.store) == 0

    def test_failures_are_not_cached_by_default(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        assert cache.store_result(Result(sample_request, 500, content=b"oops")) is False

    def test_can_cache_veto(self, sample_request):
        cache = CachePipeline(
            ttl_seconds=5,
            can_cache=lambda result: b"private" not in result.content,
        )
        assert cache.store_result(Result(sample_request, 200, content=b"private data")) is False
        assert cache.store_result(Result(sample_request, 200, content=b"public")) is True

    def test_can_cache_may_allow_errors(self, sample_request):
        cache = CachePipeline(ttl_seconds=5, can_cache=lambda result: True)
        assert cache.store_result(Result(sample_request, 404, content=b"gone")) is True

    def test_unsafe_methods_not_cached(self, make_request):
        cache = CachePipeline(ttl_seconds=5)
        post = make_request("POST")
        assert cache.store_result(Result(post, 200, content=b"created")) is False
        assert cache.resolve(post) is None

    def test_all_methods_when_methods_is_none(self, make_request):
        cache = CachePipeline(ttl_seconds=5, methods=None)
        post = make_request("POST")
        assert cache.store_result(Result(post, 200, content=b"created")) is True
        assert cache.resolve(make_request("POST")).content == b"created"

    def test_cached_results_not_stored_again(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        result = Result(sample_request, 200, content=b"x", from_cache=True)
        assert cache.store_result(result) is False

    def test_unbuffered_stream_not_stored(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        result = Result(sample_request, 200, stream=chunked([b"x"]))
        assert cache.store_result(result) is False

    @pytest.mark.asyncio
    async def test_stream_stored_once_buffered(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        result = Result(sample_request, 200, stream=chunked([b"a", b"b"]))
        await result.read()
        assert cache.store_result(result) is True
        assert cache.resolve(sample_request).content == b"ab"


class TestStrategy:
    def test_url_without_query_shares_entries(self, make_request):
        cache = CachePipeline(ttl_seconds=5, strategy=CacheStrategy.URL_WITHOUT_QUERY)
        cache.store_result(Result(make_request(path="/items?page=1"), 200, content=b"p1"))

        cached = cache.resolve(make_request(path="/items?page=2"))

        assert cached is not None
        assert cached.content == b"p1"

    def test_full_url_separates_queries(self, make_request):
        cache = CachePipeline(ttl_seconds=5, strategy="full_url")
        cache.store_result(Result(make_request(path="/items?page=1"), 200, content=b"p1"))
        assert cache.resolve(make_request(path="/items?page=2")) is None


class TestHooks:
    @pytest.mark.asyncio
    async def test_on_request_skips_on_hit(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        await cache.on_result(Result(sample_request, 200, content=b"x"))

        outcome = await cache.on_request(sample_request)

        assert isinstance(outcome, Skip)
        assert outcome.result.content == b"x"

    @pytest.mark.asyncio
    async def test_on_request_passes_through_on_miss(self, sample_request):
        cache = CachePipeline(ttl_seconds=5)
        assert await cache.on_request(sample_request) is sample_request

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, sample_request):
        """Should hit the transport once for two identical calls within the TTL."""
        transport = ScriptedTransport([ok(b"fresh")])
        executor = Executor(transport, chain=[CachePipeline(ttl_seconds=60)])

        first = await executor.execute(sample_request)
        second = await executor.execute(sample_request)

        assert transport.call_count == 1
        assert first.from_cache is False
        assert second.from_cache is True
        assert await second.read() == b"fresh"

    @pytest.mark.asyncio
    async def test_later_pipeline_rewriting_url_still_hits(self, sample_request):
        """Should key stored entries on the URL this pipeline saw, not the signed one."""

        class Signer(Pipeline):
            async def on_request(self, request):
                return request.copy_with(url=request.url + "?sig=abc")

        transport = ScriptedTransport([ok(b"fresh")])
        executor = Executor(transport, chain=[CachePipeline(ttl_seconds=60), Signer()])

        first = await executor.execute(sample_request)
        second = await executor.execute(sample_request)

        assert first.request.url.endswith("?sig=abc")
        assert transport.call_count == 1
        assert second.from_cache is True
        assert await second.read() == b"fresh"

    def test_store_result_keys_on_given_request(self, make_request):
        cache = CachePipeline(ttl_seconds=5)
        signed = make_request(path="/items?sig=abc")
        original = make_request(path="/items")

        assert cache.store_result(Result(signed, 200, content=b"x"), original) is True

        assert cache.resolve(original) is not None
        assert cache.resolve(signed) is None

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError):
            CachePipeline(ttl_seconds=-1)


@given(body=st.binary(max_size=64), status=st.integers(min_value=100, max_value=599))
def test_zero_ttl_never_caches(body, status):
    cache = CachePipeline(ttl_seconds=0, can_cache=lambda result: True, methods=None)
    request = Request(method="GET", url="https://api.test/items")

    assert cache.store_result(Result(request, status, content=body)) is False
    assert cache.resolve(request) is None
    assert len(cache.store) == 0
