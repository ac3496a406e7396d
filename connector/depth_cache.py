"""
호가 캐시

정규화 페어별 호가 스냅샷 캐시.

- PULL 항목: 조회 시 TTL이 지났으면 REST로 동기 갱신
- PUSH 항목: 스트림 프레임으로만 갱신, 조회는 REST를 호출하지 않음
- PUSH로 바뀐 항목은 PULL로 되돌아가지 않음
- 페어별 lock으로 동시 갱신은 1회만 수행
- 항목은 불변 레코드이며 갱신은 참조 교체로 수행 (asks/bids 항상 함께 교체)
"""

import asyncio
import logging

from adapters.interfaces import IVenueAdapter
from adapters.models import DepthEntry, DepthUpdate, SymbolEntry
from connector.symbol_cache import SymbolDirectoryCache
from core.constants import Defaults
from core.types import RefreshMode
from core.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class DepthCache:
    """호가 캐시

    Args:
        venue: 거래소 어댑터
        symbols: 심볼 디렉토리 캐시
        depth_limit: 호가 단계 수
        ttl_ms: PULL 항목 유효 시간 (밀리초)
        clock: 밀리초 시계 (테스트용)
    """

    def __init__(
        self,
        venue: IVenueAdapter,
        symbols: SymbolDirectoryCache,
        depth_limit: int = Defaults.DEPTH_LIMIT,
        ttl_ms: int = Defaults.DEPTH_CACHE_TTL_MS,
        clock: Clock = now_ms,
    ):
        self.venue = venue
        self.symbols = symbols
        self.depth_limit = depth_limit
        self.ttl_ms = ttl_ms
        self.clock = clock

        self._entries: dict[str, DepthEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get_entry(self, pair: str) -> DepthEntry | None:
        """현재 항목 (갱신 없이)"""
        return self._entries.get(pair)

    def _ensure_entry(self, pair: str) -> DepthEntry:
        entry = self._entries.get(pair)
        if entry is None:
            entry = DepthEntry(symbol=pair)
            self._entries[pair] = entry
        return entry

    def _is_stale(self, entry: DepthEntry) -> bool:
        return self.clock() - entry.last_updated > self.ttl_ms

    async def get_depth(self, base_asset: str, quote_asset: str) -> DepthEntry | None:
        """호가 조회

        Returns:
            DepthEntry (심볼을 모르면 None)
        """
        symbol = await self.symbols.resolve(base_asset, quote_asset)
        if symbol is None:
            return None

        entry = self._ensure_entry(symbol.symbol)
        if entry.refresh_mode == RefreshMode.PULL and self._is_stale(entry):
            await self._refresh(symbol)
        return self._entries[symbol.symbol]

    async def _refresh(self, symbol: SymbolEntry) -> None:
        """REST 호가 갱신 (페어별 1회만 진행)"""
        pair = symbol.symbol
        lock = self._locks.setdefault(pair, asyncio.Lock())

        async with lock:
            entry = self._entries[pair]
            # 대기 중 다른 요청이 갱신했거나 PUSH로 바뀌었으면 생략
            if entry.refresh_mode != RefreshMode.PULL or not self._is_stale(entry):
                return

            try:
                snapshot = await self.venue.fetch_depth_snapshot(
                    symbol.venue_symbol, self.depth_limit
                )
            except Exception as e:
                logger.error(
                    "호가 갱신 실패, 기존 값 유지",
                    extra={"symbol": pair, "error": str(e)},
                )
                return

            # 갱신 중 PUSH로 전환되었으면 스트림 값이 우선
            current = self._entries[pair]
            if current.refresh_mode != RefreshMode.PULL:
                return
            self._entries[pair] = current.with_book(snapshot.asks, snapshot.bids, self.clock())

    def mark_push(self, pair: str) -> bool:
        """PUSH 모드로 전환

        Returns:
            새로 전환되었으면 True, 이미 PUSH였으면 False
        """
        entry = self._ensure_entry(pair)
        if entry.refresh_mode == RefreshMode.PUSH:
            return False
        self._entries[pair] = entry.with_mode(RefreshMode.PUSH)
        return True

    def apply_update(self, update: DepthUpdate) -> DepthEntry | None:
        """스트림 호가 반영 (PUSH 항목만)

        Returns:
            갱신된 항목 (PUSH 항목이 아니면 None)
        """
        entry = self._entries.get(update.symbol)
        if entry is None or entry.refresh_mode != RefreshMode.PUSH:
            logger.debug(f"Depth update for unsubscribed pair dropped: {update.symbol}")
            return None

        updated = entry.with_book(update.asks, update.bids, self.clock())
        self._entries[update.symbol] = updated
        return updated

    def push_pairs(self) -> list[str]:
        """PUSH 모드 페어 목록 (재구독 기준)"""
        return [
            pair for pair, entry in self._entries.items()
            if entry.refresh_mode == RefreshMode.PUSH
        ]
