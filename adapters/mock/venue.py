"""
Mock 거래소 어댑터

테스트용 메모리 내 IVenueAdapter 구현.
호출 횟수를 기록하여 캐시/재연결 동작 검증에 사용.

프레임 형식 (JSON):
    {"type": "depth", "symbol": "BTCUSDT", "asks": [["p", "q"]], "bids": [...]}
    {"type": "balance", "balances": [{"asset": "USDT", "free": "1", "locked": "0"}]}
    {"type": "order", "symbol": "BTCUSDT", "order_id": "1", "side": "BUY", ...}
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from adapters.interfaces import DecodedFrame, SymbolLookup
from adapters.models import (
    AssetBalance,
    BalanceUpdate,
    DepthSnapshot,
    DepthUpdate,
    OrderEvent,
    PriceLevel,
    SymbolInfo,
)
from core.errors import ConfigurationError, DecodeError, TransportError


def make_levels(count: int, start: str, step: str) -> list[list[str]]:
    """테스트용 호가 단계 생성 (["가격", "수량"] 목록)"""
    price = Decimal(start)
    levels = []
    for _ in range(count):
        levels.append([str(price), "1.0"])
        price += Decimal(step)
    return levels


@dataclass
class MockVenueState:
    """Mock 상태 (메모리 내 저장)"""

    symbols: list[SymbolInfo] = field(default_factory=lambda: [
        SymbolInfo("BTC", "USDT", "BTCUSDT"),
        SymbolInfo("ETH", "USDT", "ETHUSDT"),
    ])

    # 거래소 심볼 -> (asks, bids)
    depth: dict[str, tuple[list[list[str]], list[list[str]]]] = field(default_factory=dict)

    balances: list[AssetBalance] = field(default_factory=lambda: [
        AssetBalance("USDT", Decimal("1000")),
    ])

    # 호출 횟수
    list_symbols_calls: int = 0
    depth_calls: int = 0
    account_calls: int = 0
    listen_key_calls: int = 0
    keepalive_calls: int = 0
    close_private_calls: int = 0

    # 실패 시뮬레이션
    fail_symbols: bool = False
    fail_depth: bool = False
    fail_keepalive: bool = False

    # 전송된 구독 요청 (거래소 심볼 목록)
    subscribe_requests: list[list[str]] = field(default_factory=list)


class MockVenue:
    """Mock 거래소 어댑터

    IVenueAdapter Protocol 구현.

    사용 예시:
    ```python
    venue = MockVenue()
    venue.set_depth("BTCUSDT", asks=make_levels(20, "101", "1"), bids=make_levels(20, "100", "-1"))
    connector = Connector(venue, stream_connector=server.connect)
    ```
    """

    name = "Mock"
    allowed_depth_limits: tuple[int, ...] = (5, 10, 20)

    def __init__(
        self,
        state: MockVenueState | None = None,
        has_credentials: bool = True,
        supports_account_stream: bool = True,
        ws_base_url: str = "mock://stream",
    ):
        self.state = state or MockVenueState()
        self.has_credentials = has_credentials
        self.supports_account_stream = supports_account_stream
        self.ws_base_url = ws_base_url
        self.closed = False

    # -------------------------------------------------------------------------
    # 상태 조작 메서드 (테스트용)
    # -------------------------------------------------------------------------

    def set_depth(
        self,
        venue_symbol: str,
        asks: list[list[str]],
        bids: list[list[str]],
    ) -> None:
        """호가 스냅샷 설정"""
        self.state.depth[venue_symbol] = (asks, bids)

    def set_balance(self, asset: str, free: Decimal, locked: Decimal = Decimal("0")) -> None:
        """잔고 설정"""
        self.state.balances = [b for b in self.state.balances if b.asset != asset]
        self.state.balances.append(AssetBalance(asset, free, locked))

    # -------------------------------------------------------------------------
    # REST
    # -------------------------------------------------------------------------

    async def list_symbols(self) -> list[SymbolInfo]:
        self.state.list_symbols_calls += 1
        if self.state.fail_symbols:
            raise TransportError("Mock symbols failure", 500)
        return list(self.state.symbols)

    async def fetch_depth_snapshot(self, venue_symbol: str, limit: int) -> DepthSnapshot:
        self.state.depth_calls += 1
        if self.state.fail_depth:
            raise TransportError("Timeout")
        asks, bids = self.state.depth.get(venue_symbol, ([], []))
        return DepthSnapshot(
            asks=tuple(PriceLevel.parse(level) for level in asks[:limit]),
            bids=tuple(PriceLevel.parse(level) for level in bids[:limit]),
        )

    async def fetch_account_snapshot(self) -> list[AssetBalance]:
        self._require_credentials()
        self.state.account_calls += 1
        return list(self.state.balances)

    # -------------------------------------------------------------------------
    # 스트림
    # -------------------------------------------------------------------------

    def public_channel_uri(self) -> str:
        return f"{self.ws_base_url}/public"

    async def open_private_channel_uri(self) -> str:
        self._require_credentials()
        self.state.listen_key_calls += 1
        return f"{self.ws_base_url}/private/key{self.state.listen_key_calls}"

    async def keepalive_private_channel(self) -> None:
        self.state.keepalive_calls += 1
        if self.state.fail_keepalive:
            raise TransportError("Mock keepalive failure", 400)

    async def close_private_channel(self) -> None:
        self.state.close_private_calls += 1

    def build_subscribe_frame(self, venue_symbols: list[str], depth_limit: int) -> str:
        self.state.subscribe_requests.append(list(venue_symbols))
        return json.dumps({"op": "subscribe", "symbols": venue_symbols, "depth": depth_limit})

    def decode_frame(self, raw: str | bytes, lookup: SymbolLookup) -> DecodedFrame:
        try:
            msg = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"Invalid JSON: {e}", raw) from e
        if not isinstance(msg, dict):
            raise DecodeError("Frame is not an object", raw)

        try:
            return self._decode_message(msg, lookup)
        except (KeyError, TypeError, ArithmeticError) as e:
            raise DecodeError(f"Malformed {msg.get('type')} frame: {e}", raw) from e

    def _decode_message(self, msg: dict[str, Any], lookup: SymbolLookup) -> DecodedFrame:
        frame_type = msg.get("type")

        if frame_type == "depth":
            pair = lookup(msg["symbol"])
            if pair is None:
                return None
            return DepthUpdate(
                symbol=pair,
                asks=tuple(PriceLevel.parse(level) for level in msg["asks"]),
                bids=tuple(PriceLevel.parse(level) for level in msg["bids"]),
                event_time=msg.get("time", 0),
            )

        if frame_type == "balance":
            return BalanceUpdate(
                balances=tuple(
                    AssetBalance(b["asset"], Decimal(b["free"]), Decimal(b.get("locked", "0")))
                    for b in msg["balances"]
                ),
                event_time=msg.get("time", 0),
            )

        if frame_type == "order":
            return OrderEvent(
                symbol=lookup(msg["symbol"]),
                venue_symbol=msg["symbol"],
                order_id=str(msg["order_id"]),
                client_order_id=msg.get("client_order_id", ""),
                side=msg["side"],
                order_type=msg.get("order_type", "LIMIT"),
                status=msg["status"],
                price=Decimal(msg.get("price", "0")),
                quantity=Decimal(msg.get("quantity", "0")),
                executed_qty=Decimal(msg.get("executed_qty", "0")),
                event_time=msg.get("time", 0),
                raw=msg,
            )

        return None

    async def close(self) -> None:
        self.closed = True

    def _require_credentials(self) -> None:
        if not self.has_credentials:
            raise ConfigurationError("Mock venue has no credentials")
