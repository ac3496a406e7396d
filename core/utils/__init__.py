"""
유틸리티 패키지

밀리초 타임스탬프 처리 등 공통 유틸리티
"""

from core.utils.clock import Clock, now_ms

__all__ = [
    "Clock",
    "now_ms",
]
