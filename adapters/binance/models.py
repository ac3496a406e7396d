"""
Binance API 응답 -> 공통 모델 변환

Binance Spot REST / WebSocket 응답을 adapters.models의 표준 모델로 변환.
모든 가격/수량은 문자열에서 Decimal로 변환.
"""

from decimal import Decimal
from typing import Any

from adapters.interfaces import SymbolLookup
from adapters.models import (
    AssetBalance,
    BalanceUpdate,
    DepthSnapshot,
    DepthUpdate,
    OrderEvent,
    PriceLevel,
    SymbolInfo,
)


def parse_symbols(data: dict[str, Any]) -> list[SymbolInfo]:
    """GET /api/v3/exchangeInfo 응답 -> SymbolInfo 목록

    응답 예시 (발췌):
    {
        "timezone": "UTC",
        "serverTime": 1565246363776,
        "symbols": [
            {
                "symbol": "ETHBTC",
                "status": "TRADING",
                "baseAsset": "ETH",
                "quoteAsset": "BTC",
                ...
            }
        ]
    }
    """
    return [
        SymbolInfo(
            base_asset=item["baseAsset"],
            quote_asset=item["quoteAsset"],
            venue_symbol=item["symbol"],
        )
        for item in data.get("symbols", [])
    ]


def parse_levels(levels: list[Any]) -> tuple[PriceLevel, ...]:
    """[["price", "qty"], ...] -> PriceLevel 튜플"""
    return tuple(PriceLevel.parse(level) for level in levels)


def parse_depth(data: dict[str, Any]) -> DepthSnapshot:
    """GET /api/v3/depth 응답 -> DepthSnapshot

    응답 예시:
    {
        "lastUpdateId": 1027024,
        "bids": [["4.00000000", "431.00000000"]],
        "asks": [["4.00000200", "12.00000000"]]
    }
    """
    return DepthSnapshot(
        asks=parse_levels(data.get("asks", [])),
        bids=parse_levels(data.get("bids", [])),
    )


def parse_partial_depth(pair: str, data: dict[str, Any], event_time: int = 0) -> DepthUpdate:
    """<symbol>@depth<levels> 스트림 페이로드 -> DepthUpdate

    페이로드 형식은 REST depth 응답과 동일 (lastUpdateId, bids, asks).
    """
    return DepthUpdate(
        symbol=pair,
        asks=parse_levels(data.get("asks", [])),
        bids=parse_levels(data.get("bids", [])),
        event_time=event_time,
    )


def is_zero_balance(data: dict[str, Any]) -> bool:
    """잔고가 0인지 확인"""
    return Decimal(data.get("free", "0")) == 0 and Decimal(data.get("locked", "0")) == 0


def parse_balance(data: dict[str, Any]) -> AssetBalance:
    """계좌 잔고 항목 -> AssetBalance

    REST: {"asset": "BTC", "free": "4723846.89208129", "locked": "0.00000000"}
    WS:   {"a": "BTC", "f": "10537.85314051", "l": "2.19464093"}
    """
    if "a" in data:
        return AssetBalance(
            asset=data["a"],
            free=Decimal(data["f"]),
            locked=Decimal(data["l"]),
        )
    return AssetBalance(
        asset=data["asset"],
        free=Decimal(data["free"]),
        locked=Decimal(data.get("locked", "0")),
    )


def parse_account_balances(data: dict[str, Any]) -> list[AssetBalance]:
    """GET /api/v3/account 응답 -> 잔고 목록 (0 잔고 제외)"""
    return [
        parse_balance(item)
        for item in data.get("balances", [])
        if not is_zero_balance(item)
    ]


def parse_account_position(msg: dict[str, Any]) -> BalanceUpdate:
    """outboundAccountPosition 메시지 -> BalanceUpdate

    메시지 예시:
    {
        "e": "outboundAccountPosition",
        "E": 1564034571105,
        "u": 1564034571073,
        "B": [{"a": "ETH", "f": "10000.000000", "l": "0.000000"}]
    }
    """
    return BalanceUpdate(
        balances=tuple(parse_balance(item) for item in msg.get("B", [])),
        event_time=int(msg.get("E", 0)),
    )


def parse_execution_report(msg: dict[str, Any], lookup: SymbolLookup) -> OrderEvent:
    """executionReport 메시지 -> OrderEvent

    메시지 예시 (발췌):
    {
        "e": "executionReport",
        "E": 1499405658658,
        "s": "ETHBTC",
        "c": "mUvoqJxFIILMdfAW5iGSOW",
        "S": "BUY",
        "o": "LIMIT",
        "q": "1.00000000",
        "p": "0.10264410",
        "X": "NEW",
        "i": 4293153,
        "z": "0.00000000"
    }
    """
    venue_symbol = msg["s"]
    return OrderEvent(
        symbol=lookup(venue_symbol),
        venue_symbol=venue_symbol,
        order_id=str(msg["i"]),
        client_order_id=msg.get("c", ""),
        side=msg["S"],
        order_type=msg["o"],
        status=msg["X"],
        price=Decimal(msg.get("p", "0")),
        quantity=Decimal(msg.get("q", "0")),
        executed_qty=Decimal(msg.get("z", "0")),
        event_time=int(msg.get("E", 0)),
        raw=msg,
    )
