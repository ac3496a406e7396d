"""
HTTP 전송 클라이언트 테스트

HttpTransport 응답 분류 테스트 (httpx mock 사용).
"""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from adapters.transport import HttpTransport


def _patched(transport: HttpTransport, response=None, side_effect=None):
    mock_http_client = AsyncMock()
    if side_effect is not None:
        mock_http_client.request.side_effect = side_effect
    else:
        mock_http_client.request.return_value = response
    return patch.object(transport, "_get_client", return_value=mock_http_client), mock_http_client


class TestHttpTransportRequest:
    """요청 URL / 헤더 테스트"""

    @pytest.mark.asyncio
    async def test_url_and_headers(self, http_response) -> None:
        """쿼리 문자열은 그대로 붙임"""
        transport = HttpTransport("https://api.binance.com/")
        patcher, mock_http_client = _patched(transport, http_response({}))

        with patcher:
            await transport.request(
                "GET", "/api/v3/depth", "symbol=BTCUSDT&limit=20", {"X-MBX-APIKEY": "k"}
            )

        args, kwargs = mock_http_client.request.call_args
        assert args == ("GET", "https://api.binance.com/api/v3/depth?symbol=BTCUSDT&limit=20")
        assert kwargs["headers"] == {"X-MBX-APIKEY": "k"}
        assert kwargs["timeout"] == 10.0

    @pytest.mark.asyncio
    async def test_request_count(self, http_response) -> None:
        transport = HttpTransport("https://api.binance.com")
        patcher, _ = _patched(transport, http_response({}))

        with patcher:
            await transport.request("GET", "/api/v3/ping")
            await transport.request("GET", "/api/v3/ping")

        assert transport.request_count == 2


class TestHttpTransportClassify:
    """응답 분류 테스트"""

    @pytest.mark.asyncio
    async def test_json_2xx_ok(self, http_response) -> None:
        transport = HttpTransport("https://api.binance.com")
        patcher, _ = _patched(
            transport, http_response({"a": 1}, headers={"X-MBX-USED-WEIGHT-1M": "10"})
        )

        with patcher:
            result = await transport.request("GET", "/x")

        assert result.ok is True
        assert result.data == {"a": 1}
        assert result.status_code == 200
        # 헤더 키는 소문자로 정규화
        assert result.headers["x-mbx-used-weight-1m"] == "10"

    @pytest.mark.asyncio
    async def test_error_status_with_binance_body(self, http_response) -> None:
        """Binance 에러 본문 메시지 포함"""
        transport = HttpTransport("https://api.binance.com")
        patcher, _ = _patched(
            transport, http_response({"code": -1121, "msg": "Invalid symbol."}, status_code=400)
        )

        with patcher:
            result = await transport.request("GET", "/api/v3/depth")

        assert result.ok is False
        assert result.status_code == 400
        assert "-1121" in result.error
        assert "Invalid symbol." in result.error

    @pytest.mark.asyncio
    async def test_non_json_body(self, http_response) -> None:
        """JSON이 아닌 응답은 에러"""
        transport = HttpTransport("https://api.binance.com")
        patcher, _ = _patched(
            transport, http_response("<html>502</html>", status_code=502, content_type="text/html")
        )

        with patcher:
            result = await transport.request("GET", "/x")

        assert result.ok is False
        assert "non-JSON" in result.error

    @pytest.mark.asyncio
    async def test_invalid_json(self, http_response) -> None:
        transport = HttpTransport("https://api.binance.com")
        response = http_response(None)
        response.json.side_effect = ValueError("Expecting value")
        patcher, _ = _patched(transport, response)

        with patcher:
            result = await transport.request("GET", "/x")

        assert result.ok is False
        assert "invalid JSON" in result.error


class TestHttpTransportFailures:
    """전송 실패 테스트"""

    @pytest.mark.asyncio
    async def test_httpx_timeout(self) -> None:
        """httpx 타임아웃은 'Timeout'"""
        transport = HttpTransport("https://api.binance.com")
        patcher, _ = _patched(transport, side_effect=httpx.ReadTimeout("timed out"))

        with patcher:
            result = await transport.request("GET", "/x")

        assert result.ok is False
        assert result.error == "Timeout"

    @pytest.mark.asyncio
    async def test_wait_for_timeout(self) -> None:
        """응답이 타임아웃보다 늦으면 'Timeout'"""
        transport = HttpTransport("https://api.binance.com", timeout_ms=20)

        async def slow_request(*args, **kwargs):
            await asyncio.sleep(1)

        patcher, _ = _patched(transport, side_effect=slow_request)

        with patcher:
            result = await transport.request("GET", "/x")

        assert result.error == "Timeout"

    @pytest.mark.asyncio
    async def test_connect_error(self) -> None:
        transport = HttpTransport("https://api.binance.com")
        patcher, _ = _patched(transport, side_effect=httpx.ConnectError("refused"))

        with patcher:
            result = await transport.request("GET", "/x")

        assert result.ok is False
        assert result.error.startswith("ConnectError")


class TestHttpTransportLifecycle:
    @pytest.mark.asyncio
    async def test_lazy_client_and_close(self) -> None:
        transport = HttpTransport("https://api.binance.com")

        client = await transport._get_client()
        assert isinstance(client, httpx.AsyncClient)
        assert await transport._get_client() is client

        await transport.close()
        assert client.is_closed
