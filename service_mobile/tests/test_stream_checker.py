"""
Unit tests for the stream connectivity checker.
"""

import asyncio
from unittest.mock import patch

import httpx
import pytest

from service_mobile.app.adapters.stream_checker import (
    ProbeResult,
    StreamConnectivityChecker,
    validate_stream_url,
)


def transport_returning(status_code: int, content_type: str) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "HEAD"
        return httpx.Response(status_code, headers={"content-type": content_type})

    return httpx.MockTransport(handler)


class TestValidateStreamUrl:
    """Test cases for validate_stream_url()."""

    def test_valid(self):
        assert validate_stream_url("https://radyo.yayin.com.tr:5132/stream") is None

    @pytest.mark.parametrize("url", [
        "",
        "ftp://radio.example.com/stream",
        "https://",
        "not a url",
        "https://example.com/" + "a" * 500,
    ])
    def test_invalid(self, url):
        assert validate_stream_url(url) is not None


class TestStreamConnectivityChecker:
    """Test cases for StreamConnectivityChecker."""

    @pytest.mark.asyncio
    async def test_audio_stream_is_valid(self):
        checker = StreamConnectivityChecker(transport=transport_returning(200, "audio/mpeg"))

        result = await checker.check("https://stream.example.com/live")

        assert result.is_valid
        assert result.status_code == 200
        assert result.content_type == "audio/mpeg"

    @pytest.mark.asyncio
    async def test_unexpected_content_type(self):
        checker = StreamConnectivityChecker(transport=transport_returning(200, "text/html"))

        result = await checker.check("https://stream.example.com/live")

        assert not result.is_valid
        assert "text/html" in result.error

    @pytest.mark.asyncio
    async def test_error_status(self):
        checker = StreamConnectivityChecker(transport=transport_returning(503, "audio/mpeg"))

        result = await checker.check("https://stream.example.com/live")

        assert not result.is_valid
        assert result.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_error_is_negative_result(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        checker = StreamConnectivityChecker(transport=httpx.MockTransport(handler))

        result = await checker.check("https://stream.example.com/live")

        assert not result.is_valid
        assert result.error

    @pytest.mark.asyncio
    async def test_invalid_url_is_not_requested(self):
        def handler(request):
            raise AssertionError("no request expected")

        checker = StreamConnectivityChecker(transport=httpx.MockTransport(handler))

        result = await checker.check("ftp://stream.example.com/live")

        assert not result.is_valid

    @pytest.mark.asyncio
    async def test_probe_timeout_is_failed_result_not_exception(self):
        """A check slower than the probe timeout reports failure instead of raising."""
        checker = StreamConnectivityChecker()

        async def slow_check(url):
            await asyncio.sleep(0.5)
            return ProbeResult(is_valid=True)

        with patch.object(checker, "check", side_effect=slow_check):
            result = await checker.probe("https://stream.example.com/live", timeout=0.05)

        assert not result.is_valid
        assert "0.05" in result.error

    @pytest.mark.asyncio
    async def test_probe_unexpected_error_is_failed_result(self):
        checker = StreamConnectivityChecker()

        with patch.object(checker, "check", side_effect=RuntimeError("boom")):
            result = await checker.probe("https://stream.example.com/live")

        assert not result.is_valid
        assert result.error == "boom"

    @pytest.mark.asyncio
    async def test_probe_passes_through_success(self):
        checker = StreamConnectivityChecker(transport=transport_returning(200, "application/ogg"))

        result = await checker.probe("https://stream.example.com/live", timeout=1.0)

        assert result.is_valid

    def test_to_dict(self):
        result = ProbeResult(is_valid=False, error="x", status_code=404, content_type="text/html", response_time_ms=12)

        assert result.to_dict() == {
            "isValid": False,
            "error": "x",
            "statusCode": 404,
            "contentType": "text/html",
            "responseTime": 12,
        }
