"""
어댑터 공통 데이터 모델

거래소 API 응답을 표준화한 도메인 모델.
모든 가격/수량은 Decimal 타입 사용.
모든 모델은 불변(frozen)이며, 캐시 갱신은 필드 수정이 아닌 레코드 교체로 수행.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping

from core.types import RefreshMode


def normalize_pair(base_asset: str, quote_asset: str) -> str:
    """정규화된 페어 문자열 생성 (대문자 BASE-QUOTE)

    Example:
        >>> normalize_pair("btc", "usdt")
        'BTC-USDT'
    """
    return f"{base_asset.upper()}-{quote_asset.upper()}"


def _frozen_map(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


# -------------------------------------------------------------------------
# 심볼
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class SymbolInfo:
    """거래소 심볼 목록의 한 행

    Attributes:
        base_asset: 기준 자산 (예: BTC)
        quote_asset: 견적 자산 (예: USDT)
        venue_symbol: 거래소 심볼 (예: BTCUSDT)
    """

    base_asset: str
    quote_asset: str
    venue_symbol: str

    @property
    def pair(self) -> str:
        """정규화된 페어 (BTC-USDT)"""
        return normalize_pair(self.base_asset, self.quote_asset)


@dataclass(frozen=True)
class SymbolEntry:
    """심볼 디렉토리 항목

    Attributes:
        symbol: 정규화된 페어 (BTC-USDT)
        venue_symbol: 거래소 심볼 (BTCUSDT)
        last_refreshed: 갱신 시각 (ms)
    """

    symbol: str
    venue_symbol: str
    last_refreshed: int

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환"""
        return {
            "symbol": self.symbol,
            "venue_symbol": self.venue_symbol,
            "last_refreshed": self.last_refreshed,
        }


@dataclass(frozen=True)
class SymbolDirectory:
    """심볼 디렉토리 (통째로 교체되는 불변 스냅샷)

    Attributes:
        last_refreshed: 마지막 성공 갱신 시각 (ms, 0이면 미갱신)
        entries: 정규화 페어 -> SymbolEntry
        by_venue_symbol: 거래소 심볼 -> 정규화 페어 (역색인)
    """

    last_refreshed: int = 0
    entries: Mapping[str, SymbolEntry] = field(default_factory=lambda: _frozen_map(None))
    by_venue_symbol: Mapping[str, str] = field(default_factory=lambda: _frozen_map(None))

    @classmethod
    def build(cls, symbols: list[SymbolInfo], refreshed_at: int) -> "SymbolDirectory":
        """심볼 목록에서 새 디렉토리 생성"""
        entries: dict[str, SymbolEntry] = {}
        reverse: dict[str, str] = {}
        for info in symbols:
            pair = info.pair
            entries[pair] = SymbolEntry(
                symbol=pair,
                venue_symbol=info.venue_symbol,
                last_refreshed=refreshed_at,
            )
            reverse[info.venue_symbol.upper()] = pair
        return cls(
            last_refreshed=refreshed_at,
            entries=_frozen_map(entries),
            by_venue_symbol=_frozen_map(reverse),
        )

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, pair: str) -> SymbolEntry | None:
        """정규화 페어로 조회"""
        return self.entries.get(pair.upper())


# -------------------------------------------------------------------------
# 호가
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class PriceLevel:
    """호가 한 단계"""

    price: Decimal
    quantity: Decimal

    @classmethod
    def parse(cls, level: Any) -> "PriceLevel":
        """["price", "qty"] 형태의 거래소 응답 파싱"""
        return cls(price=Decimal(str(level[0])), quantity=Decimal(str(level[1])))


@dataclass(frozen=True)
class DepthSnapshot:
    """REST 호가 스냅샷"""

    asks: tuple[PriceLevel, ...] = ()
    bids: tuple[PriceLevel, ...] = ()


@dataclass(frozen=True)
class DepthEntry:
    """호가 캐시 항목

    asks/bids는 항상 한 쌍으로 교체됨 (부분 갱신 없음).

    Attributes:
        symbol: 정규화된 페어
        refresh_mode: PULL / PUSH (PUSH로 바뀌면 되돌아가지 않음)
        last_updated: 마지막 갱신 시각 (ms, 0이면 미갱신)
        asks: 매도 호가 (가격 오름차순)
        bids: 매수 호가 (가격 내림차순)
    """

    symbol: str
    refresh_mode: RefreshMode = RefreshMode.PULL
    last_updated: int = 0
    asks: tuple[PriceLevel, ...] = ()
    bids: tuple[PriceLevel, ...] = ()

    def with_book(
        self,
        asks: tuple[PriceLevel, ...],
        bids: tuple[PriceLevel, ...],
        updated_at: int,
    ) -> "DepthEntry":
        """호가를 교체한 새 항목"""
        return DepthEntry(
            symbol=self.symbol,
            refresh_mode=self.refresh_mode,
            last_updated=updated_at,
            asks=tuple(asks),
            bids=tuple(bids),
        )

    def with_mode(self, refresh_mode: RefreshMode) -> "DepthEntry":
        """갱신 방식만 바꾼 새 항목"""
        return DepthEntry(
            symbol=self.symbol,
            refresh_mode=refresh_mode,
            last_updated=self.last_updated,
            asks=self.asks,
            bids=self.bids,
        )

    def to_dict(self) -> dict[str, Any]:
        """소비자 응답 형식 ({symbol, last_updated, asks, bids})"""
        return {
            "symbol": self.symbol,
            "last_updated": self.last_updated,
            "asks": [(level.price, level.quantity) for level in self.asks],
            "bids": [(level.price, level.quantity) for level in self.bids],
        }


@dataclass(frozen=True)
class DepthUpdate:
    """스트림으로 수신한 호가 스냅샷"""

    symbol: str
    asks: tuple[PriceLevel, ...]
    bids: tuple[PriceLevel, ...]
    event_time: int = 0


# -------------------------------------------------------------------------
# 계좌
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class AssetBalance:
    """자산 잔고

    Attributes:
        asset: 자산 코드 (예: USDT, BTC)
        free: 사용 가능 수량
        locked: 주문 등에 묶인 수량
    """

    asset: str
    free: Decimal
    locked: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        """총 잔고 (free + locked)"""
        return self.free + self.locked


@dataclass(frozen=True)
class BalanceUpdate:
    """스트림으로 수신한 잔고 변경 (언급된 자산만 교체)"""

    balances: tuple[AssetBalance, ...]
    event_time: int = 0


@dataclass(frozen=True)
class AccountState:
    """계좌 상태 캐시

    Attributes:
        refresh_mode: PULL(스냅샷 전) / PUSH(스트림 구독 후)
        last_updated: 마지막 갱신 시각 (ms)
        balances: 자산 -> AssetBalance
    """

    refresh_mode: RefreshMode = RefreshMode.PULL
    last_updated: int = 0
    balances: Mapping[str, AssetBalance] = field(default_factory=lambda: _frozen_map(None))

    def merged(
        self,
        balances: tuple[AssetBalance, ...] | list[AssetBalance],
        updated_at: int,
    ) -> "AccountState":
        """언급된 자산만 교체한 새 상태"""
        merged = dict(self.balances)
        for balance in balances:
            merged[balance.asset.upper()] = balance
        return AccountState(
            refresh_mode=self.refresh_mode,
            last_updated=updated_at,
            balances=_frozen_map(merged),
        )


# -------------------------------------------------------------------------
# 주문 이벤트
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderEvent:
    """주문 상태 변경 이벤트

    Attributes:
        symbol: 정규화된 페어 (디렉토리에 없으면 None)
        venue_symbol: 거래소 심볼
        order_id: 거래소 주문 ID
        client_order_id: 클라이언트 주문 ID
        side: BUY / SELL
        order_type: LIMIT / MARKET 등
        status: NEW / FILLED 등
        price: 주문 가격
        quantity: 주문 수량
        executed_qty: 누적 체결 수량
        event_time: 이벤트 시각 (ms)
        raw: 원본 메시지
    """

    symbol: str | None
    venue_symbol: str
    order_id: str
    client_order_id: str
    side: str
    order_type: str
    status: str
    price: Decimal
    quantity: Decimal
    executed_qty: Decimal = Decimal("0")
    event_time: int = 0
    raw: Mapping[str, Any] = field(default_factory=lambda: _frozen_map(None), compare=False)


# -------------------------------------------------------------------------
# 전송 결과
# -------------------------------------------------------------------------

@dataclass(frozen=True)
class FetchResult:
    """REST 요청 결과

    ok=True이면 data에 파싱된 JSON, 아니면 error에 진단 메시지.
    """

    ok: bool
    data: Any = None
    error: str | None = None
    status_code: int | None = None
    headers: Mapping[str, str] = field(default_factory=lambda: _frozen_map(None), compare=False)

    @classmethod
    def success(
        cls,
        data: Any,
        status_code: int | None = 200,
        headers: Mapping[str, str] | None = None,
    ) -> "FetchResult":
        return cls(ok=True, data=data, status_code=status_code, headers=_frozen_map(headers))

    @classmethod
    def failure(
        cls,
        error: str,
        status_code: int | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> "FetchResult":
        return cls(ok=False, error=error, status_code=status_code, headers=_frozen_map(headers))
