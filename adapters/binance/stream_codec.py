"""
Binance WebSocket 프레임 코덱

구독 메시지 생성과 수신 프레임 해석.

공개 스트림: Combined Stream (/stream)
    {"stream": "btcusdt@depth20@100ms", "data": {"lastUpdateId": ..., "bids": [...], "asks": [...]}}
개인 스트림: User Data Stream (/ws/<listenKey>)
    {"e": "outboundAccountPosition", ...} / {"e": "executionReport", ...}
"""

import itertools
import json
import logging
from decimal import InvalidOperation
from typing import Any

from adapters.binance.models import (
    parse_account_position,
    parse_execution_report,
    parse_partial_depth,
)
from adapters.interfaces import DecodedFrame, SymbolLookup
from core.errors import DecodeError

logger = logging.getLogger(__name__)


# Partial Book Depth 스트림이 허용하는 단계 수
ALLOWED_DEPTH_LIMITS: tuple[int, ...] = (5, 10, 20)

# 무시하는 User Data Stream 이벤트 (잔고 델타는 outboundAccountPosition으로 반영됨)
IGNORED_USER_EVENTS = frozenset({"balanceUpdate", "listStatus", "externalLockUpdate"})


def depth_stream_name(venue_symbol: str, depth_limit: int) -> str:
    """호가 스트림 이름 (예: btcusdt@depth20@100ms)"""
    return f"{venue_symbol.lower()}@depth{depth_limit}@100ms"


class BinanceStreamCodec:
    """Binance 스트림 메시지 생성/해석"""

    def __init__(self) -> None:
        self._request_ids = itertools.count(1)

    def build_subscribe_frame(self, venue_symbols: list[str], depth_limit: int) -> str:
        """SUBSCRIBE 요청 메시지

        Example:
            {"method": "SUBSCRIBE", "params": ["btcusdt@depth20@100ms"], "id": 1}
        """
        return json.dumps({
            "method": "SUBSCRIBE",
            "params": [depth_stream_name(s, depth_limit) for s in venue_symbols],
            "id": next(self._request_ids),
        })

    def decode_frame(self, raw: str | bytes, lookup: SymbolLookup) -> DecodedFrame:
        """수신 프레임 해석

        Returns:
            DepthUpdate / BalanceUpdate / OrderEvent / None

        Raises:
            DecodeError: JSON이 아니거나 필수 필드가 없을 때
        """
        try:
            msg = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(f"JSON 파싱 실패: {e}", raw) from e

        if not isinstance(msg, dict):
            raise DecodeError("JSON 객체가 아닌 프레임", raw)

        try:
            if "stream" in msg and "data" in msg:
                return self._decode_stream(msg["stream"], msg["data"], lookup)
            if "e" in msg:
                return self._decode_user_event(msg, lookup)
        except (KeyError, TypeError, IndexError, AttributeError, ValueError, InvalidOperation) as e:
            raise DecodeError(f"프레임 필드 해석 실패: {e!r}", raw) from e

        if "id" in msg and "result" in msg:
            # 구독 요청 응답 ({"result": null, "id": 1})
            logger.debug("Subscribe ack", extra={"request_id": msg["id"]})
            return None
        if "code" in msg and "msg" in msg:
            logger.warning(
                "Stream request rejected",
                extra={"error_code": msg["code"], "reason": msg["msg"]},
            )
            return None

        logger.debug(f"Unroutable frame: {str(msg)[:100]}")
        return None

    def _decode_stream(self, stream: str, data: dict[str, Any], lookup: SymbolLookup) -> DecodedFrame:
        venue_symbol, _, kind = stream.partition("@")
        if not kind.startswith("depth"):
            logger.debug(f"Unhandled stream: {stream}")
            return None

        pair = lookup(venue_symbol.upper())
        if pair is None:
            logger.debug(f"Unknown symbol in stream: {stream}")
            return None

        return parse_partial_depth(pair, data, event_time=int(data.get("E", 0)))

    def _decode_user_event(self, msg: dict[str, Any], lookup: SymbolLookup) -> DecodedFrame:
        event_type = msg["e"]

        if event_type == "outboundAccountPosition":
            return parse_account_position(msg)
        if event_type == "executionReport":
            return parse_execution_report(msg, lookup)
        if event_type == "listenKeyExpired":
            logger.warning("listenKey expired, reconnection needed")
            return None
        if event_type not in IGNORED_USER_EVENTS:
            logger.debug(f"Unknown message type: {event_type}")
        return None
