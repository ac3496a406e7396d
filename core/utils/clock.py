"""
시간 유틸리티

캐시 TTL 판정은 모두 Unix 밀리초 정수로 처리.
"""

import time
from typing import Callable

# 테스트에서 교체 가능한 시계 타입
Clock = Callable[[], int]


def now_ms() -> int:
    """현재 Unix 타임스탬프 (밀리초)"""
    return int(time.time() * 1000)
