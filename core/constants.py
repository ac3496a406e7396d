"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → 프로젝트 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent


class BinanceEndpoints:
    """Binance Spot API 엔드포인트 (고정값)

    공식 문서: https://developers.binance.com/docs/binance-spot-api-docs
    """

    # Production (Spot)
    PROD_REST_URL: str = "https://api.binance.com"
    PROD_WS_URL: str = "wss://stream.binance.com:9443"

    # Testnet (Spot)
    TEST_REST_URL: str = "https://testnet.binance.vision"
    TEST_WS_URL: str = "wss://testnet.binance.vision"


class Defaults:
    """기본값 상수 (모두 설정으로 덮어쓰기 가능)"""

    # 캐시 유효 시간 (밀리초)
    SYMBOL_CACHE_TTL_MS: int = 60_000
    DEPTH_CACHE_TTL_MS: int = 1_000

    # 스트림 재연결 대기 (밀리초, 고정 지연)
    RECONNECT_DELAY_MS: int = 1_000

    # REST 요청 타임아웃 (밀리초)
    REQUEST_TIMEOUT_MS: int = 10_000

    # 호가 구독/조회 단계 수
    DEPTH_LIMIT: int = 20

    # listenKey 갱신 주기 (초)
    LISTEN_KEY_KEEPALIVE_SEC: int = 30 * 60

    # WebSocket ping
    PING_INTERVAL_SEC: int = 20
    PING_TIMEOUT_SEC: int = 20

    LOG_LEVEL: str = "INFO"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    CONFIG_FILE: Path = CONFIG_DIR / "connector.yaml"


class RateLimitThresholds:
    """Rate Limit 임계값 (Spot 1분 요청 가중치 6000 기준)"""

    WEIGHT_WARN: int = 4000  # 경고
    WEIGHT_STOP: int = 5700  # 요청 중단
