"""
이벤트 디스패처

카테고리(depth / balance / order)별로 소비자 핸들러를 하나씩 등록하고 호출.

- 카테고리당 핸들러는 하나뿐이며, 다시 등록하면 이전 핸들러를 덮어씀 (단일 구독자 설계)
- 핸들러는 프레임을 전달하는 태스크에서 바로 호출됨 (큐, 재전송, 백프레셔 없음)
- 알려진 한계: 느린 핸들러는 같은 연결의 다음 프레임 처리를 지연시킴
"""

import inspect
import logging
from typing import Any

from adapters.interfaces import EventHandler
from core.types import EventCategory

logger = logging.getLogger(__name__)


class EventDispatcher:
    """카테고리 -> 핸들러 1개 매핑"""

    def __init__(self) -> None:
        self._handlers: dict[EventCategory, EventHandler] = {}

    def on(self, category: EventCategory | str, handler: EventHandler) -> None:
        """핸들러 등록 (기존 핸들러는 덮어씀)

        Args:
            category: 이벤트 카테고리 ("depth", "balance", "order")
            handler: 동기 함수 또는 코루틴 함수

        Raises:
            ValueError: 알 수 없는 카테고리
        """
        category = EventCategory(category)
        if category in self._handlers:
            logger.debug(f"Handler for '{category.value}' replaced")
        self._handlers[category] = handler

    def off(self, category: EventCategory | str) -> None:
        """핸들러 해제"""
        self._handlers.pop(EventCategory(category), None)

    async def emit(self, category: EventCategory, *args: Any) -> None:
        """핸들러 호출 (없으면 무시)

        핸들러 예외는 로깅만 하고 전파하지 않음 (수신 루프 보호).
        """
        handler = self._handlers.get(category)
        if handler is None:
            return

        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                "이벤트 핸들러 에러",
                extra={"category": category.value, "error": str(e)},
            )
