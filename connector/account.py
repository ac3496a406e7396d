"""
계좌 상태 캐시

REST 스냅샷으로 한 번 채운 뒤 스트림 잔고 변경으로 최신 상태 유지.
잔고 변경은 언급된 자산만 교체하고 나머지는 그대로 둠.
"""

import asyncio
import logging

from adapters.interfaces import IVenueAdapter
from adapters.models import AccountState, AssetBalance, BalanceUpdate
from core.errors import ConfigurationError
from core.types import RefreshMode
from core.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)


class AccountStateCache:
    """계좌 상태 캐시

    Args:
        venue: 거래소 어댑터
        clock: 밀리초 시계 (테스트용)
    """

    def __init__(self, venue: IVenueAdapter, clock: Clock = now_ms):
        self.venue = venue
        self.clock = clock

        self._state = AccountState()
        self._snapshot_lock = asyncio.Lock()
        self._snapshot_generation = 0

    @property
    def state(self) -> AccountState:
        """현재 계좌 상태"""
        return self._state

    async def load_snapshot(self) -> bool:
        """REST 스냅샷으로 전체 잔고 갱신

        진행 중인 조회가 있으면 끝날 때까지 기다린 뒤 그 결과를 공유하므로
        동시에 호출해도 REST 요청은 한 번만 발생.
        ConfigurationError(인증 정보 없음)는 호출자에게 전달.

        Returns:
            성공 여부
        """
        generation = self._snapshot_generation
        async with self._snapshot_lock:
            if self._snapshot_generation != generation:
                return True

            try:
                balances = await self.venue.fetch_account_snapshot()
            except ConfigurationError:
                raise
            except Exception as e:
                logger.error("계좌 스냅샷 조회 실패", extra={"error": str(e)})
                return False

            # 스냅샷은 전체 교체 (스냅샷에 없는 자산은 목록에서 제거)
            self._state = AccountState(refresh_mode=self._state.refresh_mode).merged(
                balances, self.clock()
            )
            self._snapshot_generation += 1
            logger.info(f"계좌 스냅샷 갱신 완료: {len(self._state.balances)}개 자산")
            return True

    def mark_push(self) -> None:
        """스트림 갱신 모드로 전환"""
        if self._state.refresh_mode != RefreshMode.PUSH:
            self._state = AccountState(
                refresh_mode=RefreshMode.PUSH,
                last_updated=self._state.last_updated,
                balances=self._state.balances,
            )

    def apply_update(self, update: BalanceUpdate) -> AccountState:
        """스트림 잔고 변경 반영"""
        self._state = self._state.merged(update.balances, self.clock())
        return self._state

    def get(self, asset: str) -> AssetBalance | None:
        """자산 잔고 조회"""
        return self._state.balances.get(asset.upper())

    def all(self) -> dict[str, AssetBalance]:
        """전체 잔고"""
        return dict(self._state.balances)
