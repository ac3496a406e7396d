"""
심볼 디렉토리 캐시

정규화 페어(BTC-USDT) <-> 거래소 심볼(BTCUSDT) 매핑을 TTL 기반으로 캐시.

- 갱신 성공 시 디렉토리 전체를 새 스냅샷으로 교체
- 갱신 실패 시 기존 디렉토리 유지 (오래된 값이라도 제공)
- 동시에 여러 갱신 요청이 와도 네트워크 호출은 1회 (lock + TTL 재확인)
"""

import asyncio
import logging

from adapters.interfaces import IVenueAdapter
from adapters.models import SymbolDirectory, SymbolEntry, normalize_pair
from core.constants import Defaults
from core.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class SymbolDirectoryCache:
    """심볼 디렉토리 캐시

    Args:
        venue: 거래소 어댑터
        ttl_ms: 캐시 유효 시간 (밀리초)
        clock: 밀리초 시계 (테스트용)
    """

    def __init__(
        self,
        venue: IVenueAdapter,
        ttl_ms: int = Defaults.SYMBOL_CACHE_TTL_MS,
        clock: Clock = now_ms,
    ):
        self.venue = venue
        self.ttl_ms = ttl_ms
        self.clock = clock

        self._directory = SymbolDirectory()
        self._refresh_lock = asyncio.Lock()

    @property
    def directory(self) -> SymbolDirectory:
        """현재 디렉토리 (갱신 없이)"""
        return self._directory

    def is_stale(self) -> bool:
        """TTL 만료 여부"""
        return self.clock() - self._directory.last_refreshed > self.ttl_ms

    async def all(self) -> SymbolDirectory:
        """전체 디렉토리 (만료 시 갱신)"""
        await self.refresh_if_stale()
        return self._directory

    async def resolve(self, base_asset: str, quote_asset: str) -> SymbolEntry | None:
        """페어 조회 (만료 시 갱신, 없으면 None)"""
        directory = await self.all()
        return directory.get(normalize_pair(base_asset, quote_asset))

    def lookup_pair(self, venue_symbol: str) -> str | None:
        """거래소 심볼 -> 정규화 페어 (갱신 없이, 프레임 디코딩용)"""
        return self._directory.by_venue_symbol.get(venue_symbol.upper())

    async def refresh_if_stale(self) -> SymbolDirectory:
        """만료되었으면 갱신

        이미 진행 중인 갱신이 있으면 끝날 때까지 기다린 뒤
        TTL을 다시 확인하므로 중복 호출이 발생하지 않음.
        """
        if not self.is_stale():
            return self._directory

        async with self._refresh_lock:
            if self.is_stale():
                await self._refresh()
        return self._directory

    async def _refresh(self) -> None:
        try:
            symbols = await self.venue.list_symbols()
        except Exception as e:
            logger.error(
                "심볼 목록 갱신 실패, 기존 디렉토리 유지",
                extra={"error": str(e), "entries": len(self._directory)},
            )
            return

        self._directory = SymbolDirectory.build(symbols, self.clock())
        logger.info(f"심볼 디렉토리 갱신 완료: {len(self._directory)}개")
