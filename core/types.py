"""
타입 정의 모듈

커넥터 전반에서 사용하는 Enum 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능
"""

from enum import Enum


class TradingMode(str, Enum):
    """거래 모드 (실거래 / 테스트넷)"""

    PRODUCTION = "production"
    TESTNET = "testnet"


class RefreshMode(str, Enum):
    """캐시 갱신 방식

    PULL: 조회 시 만료되었으면 REST로 동기 갱신
    PUSH: 스트림 프레임으로만 갱신 (조회는 REST 호출 안 함)
    """

    PULL = "PULL"
    PUSH = "PUSH"


class AuthLevel(str, Enum):
    """REST 요청 인증 수준"""

    NONE = "NONE"
    API_KEY = "API_KEY"  # 헤더만 (listenKey 등)
    SIGNED = "SIGNED"  # 헤더 + timestamp + signature


class Channel(str, Enum):
    """스트림 채널"""

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"


class WebSocketState(str, Enum):
    """WebSocket 연결 상태"""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    CLOSING = "CLOSING"


class EventCategory(str, Enum):
    """소비자 이벤트 카테고리"""

    DEPTH = "depth"
    BALANCE = "balance"
    ORDER = "order"
