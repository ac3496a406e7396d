"""
어댑터 테스트 픽스처

Binance 샘플 응답 및 httpx 응답 Mock 제공.
"""

from typing import Any
from unittest.mock import MagicMock

import pytest


def make_http_response(
    data: Any,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
    content_type: str = "application/json;charset=UTF-8",
) -> MagicMock:
    """httpx.Response 형태의 Mock 응답"""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = data
    response.text = str(data)
    response.headers = {"Content-Type": content_type, **(headers or {})}
    return response


@pytest.fixture
def http_response():
    """Mock 응답 생성 함수"""
    return make_http_response


# -------------------------------------------------------------------------
# Binance 응답 픽스처
# -------------------------------------------------------------------------

@pytest.fixture
def binance_exchange_info_response() -> dict[str, Any]:
    """GET /api/v3/exchangeInfo 응답 (발췌)"""
    return {
        "timezone": "UTC",
        "serverTime": 1708444800000,
        "symbols": [
            {
                "symbol": "BTCUSDT",
                "status": "TRADING",
                "baseAsset": "BTC",
                "quoteAsset": "USDT",
            },
            {
                "symbol": "ETHUSDT",
                "status": "TRADING",
                "baseAsset": "ETH",
                "quoteAsset": "USDT",
            },
        ],
    }


@pytest.fixture
def binance_depth_response() -> dict[str, Any]:
    """GET /api/v3/depth 응답 (20단계)"""
    return {
        "lastUpdateId": 1027024,
        "asks": [[f"{50001 + i}.00000000", "0.50000000"] for i in range(20)],
        "bids": [[f"{50000 - i}.00000000", "1.25000000"] for i in range(20)],
    }


@pytest.fixture
def binance_account_response() -> dict[str, Any]:
    """GET /api/v3/account 응답 (발췌)"""
    return {
        "makerCommission": 15,
        "canTrade": True,
        "accountType": "SPOT",
        "balances": [
            {"asset": "BTC", "free": "0.50000000", "locked": "0.10000000"},
            {"asset": "LTC", "free": "0.00000000", "locked": "0.00000000"},
            {"asset": "USDT", "free": "1000.00000000", "locked": "0.00000000"},
        ],
    }


@pytest.fixture
def binance_depth_stream_message() -> dict[str, Any]:
    """Combined Stream 호가 메시지"""
    return {
        "stream": "btcusdt@depth20@100ms",
        "data": {
            "lastUpdateId": 160,
            "bids": [["0.0024", "10"]],
            "asks": [["0.0026", "100"]],
        },
    }


@pytest.fixture
def binance_account_position_message() -> dict[str, Any]:
    """outboundAccountPosition 메시지"""
    return {
        "e": "outboundAccountPosition",
        "E": 1564034571105,
        "u": 1564034571073,
        "B": [
            {"a": "ETH", "f": "10000.000000", "l": "0.000000"},
        ],
    }


@pytest.fixture
def binance_execution_report_message() -> dict[str, Any]:
    """executionReport 메시지 (발췌)"""
    return {
        "e": "executionReport",
        "E": 1499405658658,
        "s": "ETHUSDT",
        "c": "mUvoqJxFIILMdfAW5iGSOW",
        "S": "BUY",
        "o": "LIMIT",
        "f": "GTC",
        "q": "1.00000000",
        "p": "0.10264410",
        "x": "NEW",
        "X": "NEW",
        "i": 4293153,
        "z": "0.00000000",
    }
