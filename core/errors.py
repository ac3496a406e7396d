"""
커넥터 예외 정의

전파 규칙:
- TransportError: 캐시 갱신 중에는 로깅 후 삼킴 (기존 캐시 유지)
- UnknownSymbolError / UnsupportedCapabilityError / ConfigurationError:
  호출자에게 즉시 전달
- DecodeError: 해당 프레임만 버림 (연결 유지)
"""


TIMEOUT_MESSAGE = "Timeout"


class ConnectorError(Exception):
    """커넥터 예외 최상위 클래스"""

    pass


class TransportError(ConnectorError):
    """네트워크 / 타임아웃 / 비정상 응답 에러

    Args:
        message: 진단 메시지 (타임아웃이면 "Timeout")
        status_code: HTTP 상태 코드 (있으면)
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_timeout(self) -> bool:
        """타임아웃 여부"""
        return self.message == TIMEOUT_MESSAGE


class UnknownSymbolError(ConnectorError):
    """심볼 디렉토리에 없는 페어"""

    def __init__(self, pair: str):
        self.pair = pair
        super().__init__(f"Unknown symbol: {pair}")


class UnsupportedCapabilityError(ConnectorError):
    """이 거래소 인스턴스에서 지원하지 않는 기능"""

    def __init__(self, capability: str, venue: str = ""):
        self.capability = capability
        self.venue = venue
        suffix = f" on {venue}" if venue else ""
        super().__init__(f"Unsupported capability: {capability}{suffix}")


class DecodeError(ConnectorError):
    """스트림 프레임 해석 실패"""

    def __init__(self, message: str, frame: str | bytes | None = None):
        self.message = message
        self.frame = frame
        super().__init__(message)


class ConfigurationError(ConnectorError):
    """설정 오류 (인증 정보 누락, 허용되지 않는 depth 크기 등)"""

    pass
