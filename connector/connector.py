"""
커넥터 (소비자 API)

하나의 거래소에 대한 심볼/호가/계좌 조회와 스트림 구독을 제공.
내부 구성 요소는 IVenueAdapter Protocol에만 의존.

사용 예시:
```python
async with Connector.from_config(load_config()) as connector:
    print(await connector.query_symbols("BTC", "USDT"))
    print(await connector.query_depth("BTC", "USDT"))

    connector.on("depth", lambda symbol, entry: print(symbol, entry.bids[0]))
    await connector.subscribe_depth("BTC", "USDT")
```
"""

import logging
from typing import Any

from adapters.binance.venue import BinanceVenue
from adapters.interfaces import EventHandler, IVenueAdapter, StreamConnector
from adapters.models import AssetBalance, normalize_pair
from connector.account import AccountStateCache
from connector.depth_cache import DepthCache
from connector.dispatcher import EventDispatcher
from connector.stream import StreamManager
from connector.symbol_cache import SymbolDirectoryCache
from core.config.loader import ConnectorConfig
from core.constants import Defaults
from core.errors import ConfigurationError, UnknownSymbolError, UnsupportedCapabilityError
from core.types import EventCategory
from core.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class Connector:
    """거래소 커넥터

    Args:
        venue: 거래소 어댑터
        depth_limit: 호가 단계 수 (거래소 허용 값이어야 구독 가능)
        symbol_cache_ttl_ms: 심볼 디렉토리 유효 시간
        depth_cache_ttl_ms: PULL 호가 유효 시간
        reconnect_delay_ms: 스트림 재연결 대기
        listen_key_keepalive_sec: 개인 채널 keepalive 주기
        stream_connector: 스트림 연결 팩토리 (None이면 websockets)
        clock: 밀리초 시계 (테스트용)
    """

    def __init__(
        self,
        venue: IVenueAdapter,
        depth_limit: int = Defaults.DEPTH_LIMIT,
        symbol_cache_ttl_ms: int = Defaults.SYMBOL_CACHE_TTL_MS,
        depth_cache_ttl_ms: int = Defaults.DEPTH_CACHE_TTL_MS,
        reconnect_delay_ms: int = Defaults.RECONNECT_DELAY_MS,
        listen_key_keepalive_sec: float = Defaults.LISTEN_KEY_KEEPALIVE_SEC,
        stream_connector: StreamConnector | None = None,
        clock: Clock = now_ms,
    ):
        self.venue = venue
        self.depth_limit = depth_limit

        self.symbols = SymbolDirectoryCache(venue, ttl_ms=symbol_cache_ttl_ms, clock=clock)
        self.depths = DepthCache(
            venue,
            self.symbols,
            depth_limit=depth_limit,
            ttl_ms=depth_cache_ttl_ms,
            clock=clock,
        )
        self.account = AccountStateCache(venue, clock=clock)
        self.dispatcher = EventDispatcher()
        self.streams = StreamManager(
            venue=venue,
            symbols=self.symbols,
            depths=self.depths,
            account=self.account,
            dispatcher=self.dispatcher,
            connector=stream_connector,
            reconnect_delay_ms=reconnect_delay_ms,
            keepalive_interval_sec=listen_key_keepalive_sec,
        )

    @classmethod
    def from_config(
        cls,
        config: ConnectorConfig,
        stream_connector: StreamConnector | None = None,
    ) -> "Connector":
        """설정으로 Binance 커넥터 생성"""
        return cls(
            venue=BinanceVenue.from_config(config),
            depth_limit=config.depth_limit,
            symbol_cache_ttl_ms=config.symbol_cache_ttl_ms,
            depth_cache_ttl_ms=config.depth_cache_ttl_ms,
            reconnect_delay_ms=config.reconnect_delay_ms,
            listen_key_keepalive_sec=config.listen_key_keepalive_sec,
            stream_connector=stream_connector,
        )

    # -------------------------------------------------------------------------
    # 조회
    # -------------------------------------------------------------------------

    async def query_symbols(
        self,
        base_asset: str | None = None,
        quote_asset: str | None = None,
    ) -> dict[str, Any] | None:
        """심볼 조회

        인자가 없으면 전체 디렉토리 (페어 -> 항목),
        base/quote를 주면 해당 항목 (없으면 None).

        Example:
            >>> await connector.query_symbols("BTC", "USDT")
            {'symbol': 'BTC-USDT', 'venue_symbol': 'BTCUSDT', 'last_refreshed': ...}
        """
        if base_asset is None and quote_asset is None:
            directory = await self.symbols.all()
            return {pair: entry.to_dict() for pair, entry in directory.entries.items()}

        if base_asset is None or quote_asset is None:
            raise ValueError("base_asset and quote_asset must be given together")

        entry = await self.symbols.resolve(base_asset, quote_asset)
        return entry.to_dict() if entry is not None else None

    async def query_depth(self, base_asset: str, quote_asset: str) -> dict[str, Any] | None:
        """호가 조회

        PULL 항목은 TTL이 지났으면 REST로 갱신하고,
        PUSH 항목은 스트림으로 받은 최신 값을 그대로 반환.

        Returns:
            {"symbol", "last_updated", "asks", "bids"} (심볼을 모르면 None)
        """
        entry = await self.depths.get_depth(base_asset, quote_asset)
        return entry.to_dict() if entry is not None else None

    async def query_assets(
        self,
        asset: str | None = None,
    ) -> AssetBalance | dict[str, AssetBalance] | None:
        """잔고 조회

        아직 스냅샷이 없으면 REST로 한 번 조회.
        이후에는 스트림 잔고 변경으로 최신 상태 유지.

        Raises:
            ConfigurationError: 인증 정보가 없을 때
        """
        if self.account.state.last_updated == 0:
            await self.account.load_snapshot()

        if asset is None:
            return self.account.all()
        return self.account.get(asset)

    # -------------------------------------------------------------------------
    # 구독
    # -------------------------------------------------------------------------

    async def subscribe_depth(self, base_asset: str, quote_asset: str) -> bool:
        """호가 스트림 구독

        이미 구독 중인 페어는 구독 메시지를 다시 보내지 않음.

        Returns:
            구독 메시지가 열린 연결로 전송되었으면 True
            (연결 실패 시 False, 재연결 후 자동 구독)

        Raises:
            UnknownSymbolError: 디렉토리에 없는 페어
            ConfigurationError: 거래소가 허용하지 않는 depth_limit
        """
        entry = await self.symbols.resolve(base_asset, quote_asset)
        if entry is None:
            raise UnknownSymbolError(normalize_pair(base_asset, quote_asset))

        if self.depth_limit not in self.venue.allowed_depth_limits:
            raise ConfigurationError(
                f"depth_limit {self.depth_limit} not allowed on {self.venue.name} "
                f"(allowed: {list(self.venue.allowed_depth_limits)})"
            )

        newly_pushed = self.depths.mark_push(entry.symbol)
        if newly_pushed:
            logger.info(f"호가 구독: {entry.symbol}", extra={"venue_symbol": entry.venue_symbol})
        return await self.streams.subscribe_depth(entry.venue_symbol, newly_pushed)

    async def subscribe_account(self) -> bool:
        """계좌/주문 스트림 구독

        Returns:
            개인 채널이 연결되어 있으면 True

        Raises:
            UnsupportedCapabilityError: 이 거래소 인스턴스가 계좌 스트림을 지원하지 않을 때
            ConfigurationError: 인증 정보가 없을 때
        """
        if not self.venue.supports_account_stream:
            raise UnsupportedCapabilityError("account_stream", self.venue.name)
        return await self.streams.subscribe_account()

    def on(self, category: EventCategory | str, handler: EventHandler) -> None:
        """이벤트 핸들러 등록 (카테고리당 1개, 다시 등록하면 덮어씀)

        - depth: handler(symbol, DepthEntry)
        - balance: handler(BalanceUpdate)
        - order: handler(OrderEvent)
        """
        self.dispatcher.on(category, handler)

    # -------------------------------------------------------------------------
    # 종료
    # -------------------------------------------------------------------------

    async def destroy(self) -> None:
        """모든 연결을 의도적으로 종료 (재연결 없음)"""
        await self.streams.stop()
        await self.venue.close()
        logger.info(f"{self.venue.name} 커넥터 종료")

    async def __aenter__(self) -> "Connector":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.destroy()
