"""
Binance REST 클라이언트 테스트

BinanceRestClient 서명/요청 테스트 (httpx mock 사용).
"""

import hashlib
import hmac
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from adapters.binance.rest_client import BinanceRestClient, build_query_string
from adapters.transport import HttpTransport
from core.errors import ConfigurationError, TransportError
from core.types import AuthLevel


def make_client(api_key: str | None = "test_api_key", api_secret: str | None = "test_secret_key"):
    return BinanceRestClient(
        transport=HttpTransport("https://api.binance.com"),
        api_key=api_key,
        api_secret=api_secret,
        clock=lambda: 1499827319559,
    )


def mock_http(client: BinanceRestClient, response):
    mock_http_client = AsyncMock()
    mock_http_client.request.return_value = response
    return patch.object(client.transport, "_get_client", return_value=mock_http_client), mock_http_client


class TestBuildQueryString:
    """쿼리 문자열 생성 테스트"""

    def test_insertion_order(self) -> None:
        assert build_query_string({"symbol": "BTCUSDT", "limit": 20}) == "symbol=BTCUSDT&limit=20"

    def test_percent_encoding(self) -> None:
        """값은 퍼센트 인코딩 (safe 문자 없음)"""
        assert build_query_string({"a": "x/y z", "b": "1=2"}) == "a=x%2Fy%20z&b=1%3D2"

    def test_empty(self) -> None:
        assert build_query_string(None) == ""
        assert build_query_string({}) == ""


class TestBinanceRestClientSignature:
    """서명 생성 테스트"""

    def test_generate_signature(self) -> None:
        """HMAC-SHA256 서명 생성"""
        client = make_client()

        signature = client._generate_signature("symbol=BTCUSDT&timestamp=1234567890")

        # 서명은 64자 hex 문자열
        assert len(signature) == 64
        assert all(c in "0123456789abcdef" for c in signature)

    def test_signature_consistency(self) -> None:
        """동일 입력에 대해 동일 서명"""
        client = make_client()

        assert client._generate_signature("test=value") == client._generate_signature("test=value")

    def test_binance_documented_example(self) -> None:
        """Binance 문서의 서명 예시와 일치"""
        client = make_client(
            api_key="vmPUZE6mv9SD5VNHk4HlWFsOr6aKE2zvsw0MuIgwCIPy6utIco14y7Ju91duEh8A",
            api_secret="NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j",
        )
        query = (
            "symbol=LTCBTC&side=BUY&type=LIMIT&timeInForce=GTC&quantity=1"
            "&price=0.1&recvWindow=5000&timestamp=1499827319559"
        )

        assert client._generate_signature(query) == (
            "c8db56825ae71d6d79447849e617115f4a920fa2acdcab2b053c4b2838bd6b71"
        )


class TestBinanceRestClientSign:
    """요청 서명 (sign) 테스트"""

    def test_none_auth(self) -> None:
        client = make_client(api_key=None, api_secret=None)

        query_string, headers = client.sign({"symbol": "BTCUSDT"}, AuthLevel.NONE)

        assert query_string == "symbol=BTCUSDT"
        assert headers == {}

    def test_api_key_auth(self) -> None:
        """API_KEY: 헤더만, 서명 없음"""
        client = make_client()

        query_string, headers = client.sign({"listenKey": "abc"}, AuthLevel.API_KEY)

        assert query_string == "listenKey=abc"
        assert headers == {"X-MBX-APIKEY": "test_api_key"}

    def test_signed_appends_timestamp_then_signature(self) -> None:
        """SIGNED: timestamp 후 전체 문자열 서명"""
        client = make_client()

        query_string, headers = client.sign({"recvWindow": 5000}, AuthLevel.SIGNED)

        payload = "recvWindow=5000&timestamp=1499827319559"
        expected = hmac.new(b"test_secret_key", payload.encode(), hashlib.sha256).hexdigest()
        assert query_string == f"{payload}&signature={expected}"
        assert headers == {"X-MBX-APIKEY": "test_api_key"}

    def test_signed_without_params(self) -> None:
        client = make_client()

        query_string, _ = client.sign(None, AuthLevel.SIGNED)

        assert query_string.startswith("timestamp=1499827319559&signature=")

    def test_missing_key(self) -> None:
        client = make_client(api_key=None, api_secret=None)

        with pytest.raises(ConfigurationError):
            client.sign(None, AuthLevel.API_KEY)

    def test_missing_secret(self) -> None:
        client = make_client(api_secret=None)

        with pytest.raises(ConfigurationError):
            client.sign(None, AuthLevel.SIGNED)


class TestBinanceRestClientMarketData:
    """시장 데이터 조회 테스트"""

    @pytest.mark.asyncio
    async def test_get_symbols(self, http_response, binance_exchange_info_response) -> None:
        client = make_client()
        patcher, mock_http_client = mock_http(client, http_response(binance_exchange_info_response))

        with patcher:
            symbols = await client.get_symbols()

        assert [s.pair for s in symbols] == ["BTC-USDT", "ETH-USDT"]
        assert symbols[0].venue_symbol == "BTCUSDT"
        args, _ = mock_http_client.request.call_args
        assert args[1] == "https://api.binance.com/api/v3/exchangeInfo"

    @pytest.mark.asyncio
    async def test_get_depth(self, http_response, binance_depth_response) -> None:
        """호가 조회 - Decimal 반환 확인"""
        client = make_client()
        patcher, mock_http_client = mock_http(client, http_response(binance_depth_response))

        with patcher:
            snapshot = await client.get_depth("BTCUSDT", 20)

        assert len(snapshot.asks) == 20
        assert len(snapshot.bids) == 20
        assert snapshot.asks[0].price == Decimal("50001")
        assert isinstance(snapshot.bids[0].quantity, Decimal)
        args, kwargs = mock_http_client.request.call_args
        assert args[1].endswith("/api/v3/depth?symbol=BTCUSDT&limit=20")
        assert kwargs["headers"] == {}

    @pytest.mark.asyncio
    async def test_failure_raises_transport_error(self, http_response) -> None:
        client = make_client()
        patcher, _ = mock_http(
            client, http_response({"code": -1121, "msg": "Invalid symbol."}, status_code=400)
        )

        with patcher:
            with pytest.raises(TransportError) as exc_info:
                await client.get_depth("NOPE", 20)

        assert exc_info.value.status_code == 400


class TestBinanceRestClientAccount:
    """계좌 조회 테스트"""

    @pytest.mark.asyncio
    async def test_get_account_balances_signed(
        self, http_response, binance_account_response
    ) -> None:
        """서명 요청 + 0 잔고 제외"""
        client = make_client()
        patcher, mock_http_client = mock_http(client, http_response(binance_account_response))

        with patcher:
            balances = await client.get_account_balances()

        assert [b.asset for b in balances] == ["BTC", "USDT"]
        assert balances[0].locked == Decimal("0.1")
        args, kwargs = mock_http_client.request.call_args
        assert "timestamp=1499827319559&signature=" in args[1]
        assert kwargs["headers"]["X-MBX-APIKEY"] == "test_api_key"

    @pytest.mark.asyncio
    async def test_get_account_balances_without_credentials(self) -> None:
        client = make_client(api_key=None, api_secret=None)

        with pytest.raises(ConfigurationError):
            await client.get_account_balances()


class TestBinanceRestClientListenKey:
    """listenKey 관리 테스트"""

    @pytest.mark.asyncio
    async def test_create_listen_key_success(self, http_response) -> None:
        """listenKey 생성 성공"""
        client = make_client()
        patcher, mock_http_client = mock_http(
            client, http_response({"listenKey": "test_listen_key_12345"})
        )

        with patcher:
            listen_key = await client.create_listen_key()

        assert listen_key == "test_listen_key_12345"
        assert client._listen_key == "test_listen_key_12345"
        args, _ = mock_http_client.request.call_args
        assert args[0] == "POST"

    @pytest.mark.asyncio
    async def test_extend_and_delete(self, http_response) -> None:
        """listenKey 갱신 후 삭제"""
        client = make_client()
        client._listen_key = "abc"
        patcher, mock_http_client = mock_http(client, http_response({}))

        with patcher:
            await client.extend_listen_key()
            extend_args, _ = mock_http_client.request.call_args
            await client.delete_listen_key()
            delete_args, _ = mock_http_client.request.call_args

        assert extend_args[0] == "PUT"
        assert extend_args[1].endswith("listenKey=abc")
        assert delete_args[0] == "DELETE"
        assert client._listen_key is None

    @pytest.mark.asyncio
    async def test_extend_without_key_is_noop(self) -> None:
        client = make_client()
        client.transport.request = AsyncMock()

        await client.extend_listen_key()
        await client.delete_listen_key()

        client.transport.request.assert_not_called()


class TestBinanceRestClientRateLimit:
    """Rate Limit 추적 테스트"""

    @pytest.mark.asyncio
    async def test_tracks_weight_header(self, http_response) -> None:
        client = make_client()
        patcher, _ = mock_http(client, http_response({}, headers={"X-MBX-USED-WEIGHT-1M": "42"}))

        with patcher:
            await client.fetch("/api/v3/ping")

        assert client.rate_tracker.used_weight_1m == 42

    @pytest.mark.asyncio
    async def test_blocks_when_stop_threshold_reached(self, http_response) -> None:
        """중단 임계값 도달 시 요청하지 않음"""
        client = make_client()
        client.rate_tracker.update_from_headers({"X-MBX-USED-WEIGHT-1M": "5900"})
        patcher, mock_http_client = mock_http(client, http_response({}))

        with patcher:
            result = await client.fetch("/api/v3/ping")

        assert result.ok is False
        mock_http_client.request.assert_not_called()

    @pytest.mark.asyncio
    async def test_blocks_during_retry_after(self, http_response) -> None:
        """429 + Retry-After 응답 후 대기 시간 동안 요청하지 않음"""
        client = make_client()
        patcher, mock_http_client = mock_http(
            client,
            http_response({"code": -1003, "msg": "Too many requests"}, status_code=429,
                          headers={"Retry-After": "60"}),
        )

        with patcher:
            first = await client.fetch("/api/v3/ping")
            second = await client.fetch("/api/v3/ping")

        assert first.ok is False
        assert second.ok is False
        assert second.error == "Request weight threshold reached"
        assert mock_http_client.request.call_count == 1
