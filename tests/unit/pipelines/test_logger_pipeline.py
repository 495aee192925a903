"""Unit tests for LoggerPipeline."""

import pytest
from structlog.testing import capture_logs

from http_pipeline.exceptions import NetworkError
from http_pipeline.pipelines.logger import MAX_LOGGED_BODY_CHARS, LogEvent, LoggerPipeline
from http_pipeline.result import Result
from http_pipeline.utils.headers import REDACTED
from support import chunked


class TestRequestEvents:
    """Tests for on_request logging."""

    @pytest.mark.asyncio
    async def test_logs_request_with_redacted_headers(self, make_request):
        log = LoggerPipeline()
        request = make_request(headers={"Authorization": "Bearer secret", "Accept": "*/*"})

        with capture_logs() as logs:
            assert await log.on_request(request) is request

        event = log.history[-1]
        assert event.type == "request"
        assert event.method == "GET"
        assert event.headers == {"Authorization": REDACTED, "Accept": "*/*"}
        assert event.curl is None
        assert logs[0]["event"] == "http.request"
        assert logs[0]["log_level"] == "info"
        assert "secret" not in str(logs[0])

    @pytest.mark.asyncio
    async def test_curl_is_redacted(self, make_request):
        log = LoggerPipeline(include_curl=True)
        request = make_request("POST", headers={"Authorization": "Bearer secret"}, body="x=1")

        await log.on_request(request)

        curl = log.history[-1].curl
        assert curl.startswith("curl -X POST")
        assert "secret" not in curl
        assert REDACTED in curl

    @pytest.mark.asyncio
    async def test_disabled_records_nothing(self, sample_request):
        log = LoggerPipeline(enabled=False)

        with capture_logs() as logs:
            await log.on_request(sample_request)
            await log.on_result(Result(sample_request, 200))
            await log.on_error(NetworkError(sample_request))

        assert list(log.history) == []
        assert logs == []


class TestResultEvents:
    @pytest.mark.asyncio
    async def test_logs_buffered_body(self, sample_request):
        log = LoggerPipeline()
        result = Result(
            sample_request,
            200,
            {"Set-Cookie": "a=b", "Cookie": "c=d"},
            content=b"hello",
            elapsed_ms=3.5,
        )

        await log.on_result(result)

        event = log.history[-1]
        assert event.type == "result"
        assert event.status_code == 200
        assert event.elapsed_ms == 3.5
        assert event.body == "hello"
        assert event.headers["cookie"] == REDACTED
        assert event.streaming is False

    @pytest.mark.asyncio
    async def test_long_bodies_are_truncated(self, sample_request):
        log = LoggerPipeline()
        await log.on_result(Result(sample_request, 200, content=b"x" * 5000))
        assert len(log.history[-1].body) == MAX_LOGGED_BODY_CHARS

    @pytest.mark.asyncio
    async def test_live_stream_is_not_drained(self, sample_request):
        """Should log stream metadata without consuming the body."""
        log = LoggerPipeline()
        result = Result(sample_request, 200, stream=chunked([b"a", b"b"]))

        await log.on_result(result)

        event = log.history[-1]
        assert event.streaming is True
        assert event.body is None
        assert await result.read() == b"ab"


class TestErrorEvents:
    @pytest.mark.asyncio
    async def test_logs_error_as_warning(self, sample_request):
        log = LoggerPipeline()
        error = NetworkError(sample_request, "connection reset")
        error.elapsed_ms = 12.0

        with capture_logs() as logs:
            await log.on_error(error)

        event = log.history[-1]
        assert event.type == "error"
        assert event.error_kind == "network"
        assert event.error == "connection reset"
        assert event.elapsed_ms == 12.0
        assert logs[0]["event"] == "http.error"
        assert logs[0]["log_level"] == "warning"


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_is_bounded(self, make_request):
        log = LoggerPipeline(max_history=3)
        for index in range(5):
            await log.on_request(make_request(path=f"/items/{index}"))

        assert [event.url for event in log.history] == [
            "https://api.test/items/2",
            "https://api.test/items/3",
            "https://api.test/items/4",
        ]

        log.clear()
        assert len(log.history) == 0

    def test_invalid_history_size(self):
        with pytest.raises(ValueError):
            LoggerPipeline(max_history=0)

    @pytest.mark.asyncio
    async def test_on_log_override(self, sample_request):
        forwarded = []

        class Forwarding(LoggerPipeline):
            def on_log(self, event):
                forwarded.append(event.model_dump(mode="json"))

        await Forwarding().on_request(sample_request)

        assert forwarded[0]["type"] == "request"
        assert forwarded[0]["url"] == "https://api.test/items"

    def test_events_are_frozen(self):
        event = LogEvent(type="request", method="GET", url="https://api.test")
        with pytest.raises(Exception):
            event.method = "POST"  # type: ignore[misc]
