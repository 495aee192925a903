"""Unit tests for Result body handling."""

import asyncio

import pytest

from http_pipeline.cancel import CancelToken
from http_pipeline.exceptions import NetworkError, RequestCancelledError, StreamConsumedError
from http_pipeline.models import Request, StreamState
from http_pipeline.result import Result, ResultLike
from support import broken, chunked


class CloseRecorder:
    """Close callback counting how often it was awaited."""

    def __init__(self) -> None:
        self.calls = 0

    async def __call__(self) -> None:
        self.calls += 1


@pytest.fixture
def streaming(sample_request: Request):
    def factory(chunks=(b"he", b"ll", b"o"), request: Request | None = None, **kwargs):
        return Result(request or sample_request, 200, stream=chunked(list(chunks)), **kwargs)

    return factory


class TestMetadata:
    """Tests for status and header accessors."""

    def test_headers_are_lower_cased(self, sample_request):
        """Should normalize header names to lower case."""
        result = Result(sample_request, 200, {"Content-Type": "text/plain"})
        assert result.headers == {"content-type": "text/plain"}

    @pytest.mark.parametrize(
        "status,expected",
        [(199, False), (200, True), (204, True), (299, True), (300, False), (500, False)],
    )
    def test_is_success(self, sample_request, status, expected):
        assert Result(sample_request, status).is_success is expected

    def test_content_and_stream_are_exclusive(self, sample_request):
        with pytest.raises(ValueError):
            Result(sample_request, 200, content=b"a", stream=chunked([b"a"]))

    def test_no_body_means_empty_content(self, sample_request):
        result = Result(sample_request, 204)
        assert result.content == b""
        assert result.state is StreamState.BUFFERED
        assert result.is_streaming is False

    def test_satisfies_result_like(self, sample_request):
        assert isinstance(Result(sample_request, 200), ResultLike)


class TestBufferedBody:
    """Tests for results constructed with content."""

    @pytest.mark.asyncio
    async def test_read_returns_content(self, sample_request):
        result = Result(sample_request, 200, content=b"payload")
        assert await result.read() == b"payload"
        assert await result.read() == b"payload"

    @pytest.mark.asyncio
    async def test_text_uses_declared_charset(self, sample_request):
        result = Result(
            sample_request,
            200,
            {"content-type": "text/plain; charset=latin-1"},
            content="café".encode("latin-1"),
        )
        assert await result.text() == "café"

    @pytest.mark.asyncio
    async def test_json(self, sample_request):
        result = Result(sample_request, 200, content=b'{"id": 7, "tags": ["a"]}')
        assert await result.json() == {"id": 7, "tags": ["a"]}

    @pytest.mark.asyncio
    async def test_aiter_bytes_replays_buffer(self, sample_request):
        result = Result(sample_request, 200, content=b"abc")
        first = [chunk async for chunk in result.aiter_bytes()]
        second = [chunk async for chunk in result]
        assert first == second == [b"abc"]


class TestStreamingBody:
    """Tests for results backed by a live stream."""

    @pytest.mark.asyncio
    async def test_read_buffers_once(self, streaming):
        """Should drain the stream once and serve later reads from memory."""
        close = CloseRecorder()
        result = streaming(close=close)

        assert result.state is StreamState.PENDING
        assert result.is_buffered is False
        assert await result.read() == b"hello"
        assert await result.read() == b"hello"
        assert result.state is StreamState.BUFFERED
        assert result.content == b"hello"
        assert close.calls == 1

    @pytest.mark.asyncio
    async def test_content_before_read_raises(self, streaming):
        result = streaming()
        with pytest.raises(StreamConsumedError, match="not buffered yet"):
            result.content

    @pytest.mark.asyncio
    async def test_iterating_tees_into_buffer(self, streaming):
        """Should make the body readable after it was iterated."""
        result = streaming()

        chunks = [chunk async for chunk in result.aiter_bytes()]

        assert chunks == [b"he", b"ll", b"o"]
        assert result.content == b"hello"
        assert await result.text() == "hello"

    @pytest.mark.asyncio
    async def test_second_live_consumer_fails_fast(self, streaming):
        result = streaming()
        iterator = result.aiter_bytes()
        assert await iterator.__anext__() == b"he"

        with pytest.raises(StreamConsumedError):
            result.aiter_bytes()
        with pytest.raises(StreamConsumedError):
            await result.read()

        await iterator.aclose()

    @pytest.mark.asyncio
    async def test_concurrent_reads_share_one_drain(self, sample_request):
        """Should let concurrent read() calls await the same buffering."""
        pulls = 0

        async def counted():
            nonlocal pulls
            for chunk in (b"a", b"b", b"c"):
                pulls += 1
                await asyncio.sleep(0)
                yield chunk

        result = Result(sample_request, 200, stream=counted())

        first, second = await asyncio.gather(result.read(), result.read())

        assert first == second == b"abc"
        assert pulls == 3

    @pytest.mark.asyncio
    async def test_close_before_drain_prevents_reading(self, streaming):
        close = CloseRecorder()
        result = streaming(close=close)

        await result.aclose()

        assert result.state is StreamState.CLOSED
        assert close.calls == 1
        with pytest.raises(StreamConsumedError):
            await result.read()

    @pytest.mark.asyncio
    async def test_aclose_is_idempotent(self, streaming):
        close = CloseRecorder()
        result = streaming(close=close)
        async with result:
            await result.read()
        await result.aclose()
        assert close.calls == 1

    @pytest.mark.asyncio
    async def test_abandoned_iteration_closes_stream(self, streaming):
        close = CloseRecorder()
        result = streaming(close=close)

        iterator = result.aiter_bytes()
        await iterator.__anext__()
        await iterator.aclose()

        assert result.state is StreamState.CLOSED
        assert close.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_streaming(self, make_request):
        """Should raise RequestCancelledError at the next chunk after cancel()."""
        token = CancelToken()
        request = make_request(cancel_token=token)
        result = Result(request, 200, stream=chunked([b"a", b"b", b"c"]))

        received = []
        with pytest.raises(RequestCancelledError):
            async for chunk in result.aiter_bytes():
                received.append(chunk)
                token.cancel()

        assert received == [b"a"]
        assert result.state is StreamState.CLOSED

    @pytest.mark.asyncio
    async def test_read_of_broken_stream_raises_network_error(self, sample_request):
        close = CloseRecorder()
        failure = ConnectionResetError("peer closed connection")
        result = Result(sample_request, 200, stream=broken([b"partial"], failure), close=close)

        with pytest.raises(NetworkError) as exc_info:
            await result.read()

        assert exc_info.value.request is sample_request
        assert exc_info.value.cause is failure
        assert exc_info.value.__cause__ is failure
        assert "peer closed connection" in exc_info.value.message
        assert result.state is StreamState.CLOSED
        assert close.calls == 1

    @pytest.mark.asyncio
    async def test_iterating_broken_stream_raises_network_error(self, sample_request):
        result = Result(sample_request, 200, stream=broken([b"a", b"b"], OSError()))

        received = []
        with pytest.raises(NetworkError, match="OSError"):
            async for chunk in result.aiter_bytes():
                received.append(chunk)

        assert received == [b"a", b"b"]
        with pytest.raises(StreamConsumedError):
            await result.read()


class TestDerivedResults:
    """Tests for with_stream, cached_copy and snapshots."""

    @pytest.mark.asyncio
    async def test_with_stream_closes_original(self, streaming):
        close = CloseRecorder()
        original = streaming(close=close)

        async def upper(source):
            async for chunk in source:
                yield chunk.upper()

        sibling = original.with_stream(upper(original.aiter_bytes()))

        assert await sibling.read() == b"HELLO"
        assert sibling.status_code == original.status_code
        assert close.calls == 1

    @pytest.mark.asyncio
    async def test_cached_copy_is_independent(self, sample_request):
        result = Result(sample_request, 200, {"etag": "v1"}, content=b"body")

        cached = result.cached_copy()
        cached.headers["etag"] = "changed"

        assert cached.from_cache is True
        assert result.from_cache is False
        assert result.headers["etag"] == "v1"
        assert await cached.read() == b"body"

    def test_cached_copy_requires_buffered_body(self, streaming):
        with pytest.raises(StreamConsumedError):
            streaming().cached_copy()

    @pytest.mark.asyncio
    async def test_snapshot_round_trip(self, streaming, sample_request):
        result = streaming(elapsed_ms=12.5, reason_phrase="OK")

        snapshot = await result.to_snapshot()
        restored = Result.from_snapshot(snapshot, sample_request)

        assert snapshot.status == 200
        assert restored.content == b"hello"
        assert restored.reason_phrase == "OK"
        assert restored.elapsed_ms == 12.5
        assert restored.request is sample_request

    @pytest.mark.asyncio
    async def test_to_dict_includes_body_once_buffered(self, streaming):
        result = streaming()
        assert "body" not in result.to_dict()

        await result.read()

        data = result.to_dict()
        assert data["body"] == "hello"
        assert data["status_code"] == 200
        assert data["request"]["method"] == "GET"
