"""
Binance Rate Limit 추적

응답 헤더에서 요청 가중치를 추적하고,
임계값 초과 시 경고 또는 요청 차단 여부를 알려줌.
"""

from dataclasses import dataclass
from typing import Any, Mapping

from core.constants import RateLimitThresholds
from core.utils.clock import now_ms


@dataclass
class RateLimitTracker:
    """Rate Limit 추적기

    Binance Spot Rate Limit 헤더:
    - X-MBX-USED-WEIGHT-1M: 1분간 사용된 요청 가중치
    - Retry-After: 429/418 응답 시 대기 시간 (초)

    가중치는 분 단위로 리셋되므로, 마지막 갱신 이후 1분이 지나면
    추적 값을 0으로 간주함.
    """

    used_weight_1m: int = 0
    retry_after: int = 0
    last_updated: int = 0
    warn_threshold: int = RateLimitThresholds.WEIGHT_WARN
    stop_threshold: int = RateLimitThresholds.WEIGHT_STOP

    def update_from_headers(self, headers: Mapping[str, Any], at_ms: int | None = None) -> None:
        """응답 헤더에서 Rate Limit 정보 업데이트

        Args:
            headers: HTTP 응답 헤더 (대소문자 무관)
            at_ms: 갱신 시각 (None이면 현재 시각)
        """
        headers_lower = {k.lower(): v for k, v in headers.items()}

        weight = headers_lower.get("x-mbx-used-weight-1m")
        if weight is not None:
            self.used_weight_1m = int(weight)

        # Retry-After 없는 응답이면 대기 해제
        retry_after = headers_lower.get("retry-after")
        self.retry_after = int(retry_after) if retry_after is not None else 0

        self.last_updated = now_ms() if at_ms is None else at_ms

    def _current_weight(self, at_ms: int | None = None) -> int:
        now = now_ms() if at_ms is None else at_ms
        if now - self.last_updated >= 60_000:
            return 0
        return self.used_weight_1m

    def should_warn(self, at_ms: int | None = None) -> bool:
        """경고 임계값 도달 여부"""
        return self._current_weight(at_ms) >= self.warn_threshold

    def retry_until(self) -> int:
        """Retry-After 대기 종료 시각 (밀리초, 대기 없으면 0)"""
        if self.retry_after <= 0:
            return 0
        return self.last_updated + self.retry_after * 1000

    def should_stop(self, at_ms: int | None = None) -> bool:
        """요청 중단 필요 여부 (Retry-After 대기 중이거나 중단 임계값 도달)"""
        now = now_ms() if at_ms is None else at_ms
        if now < self.retry_until():
            return True
        return self._current_weight(now) >= self.stop_threshold

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환 (로깅용)"""
        return {
            "used_weight_1m": self.used_weight_1m,
            "retry_after": self.retry_after,
            "last_updated": self.last_updated,
        }
