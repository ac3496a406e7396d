"""
설정 로더

connector.yaml 로드 및 커넥터 설정 생성
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from core.constants import BinanceEndpoints, Defaults, Paths
from core.types import TradingMode


@dataclass(frozen=True)
class ConnectorConfig:
    """커넥터 설정

    불변 데이터 구조로 설정 변경 방지.
    인증 정보(api_key, api_secret)는 선택 사항이며,
    없으면 계좌 스트림 등 인증이 필요한 기능에서 ConfigurationError 발생.
    """

    rest_url: str = BinanceEndpoints.PROD_REST_URL
    ws_url: str = BinanceEndpoints.PROD_WS_URL
    api_key: str | None = None
    api_secret: str | None = None
    depth_limit: int = Defaults.DEPTH_LIMIT
    symbol_cache_ttl_ms: int = Defaults.SYMBOL_CACHE_TTL_MS
    depth_cache_ttl_ms: int = Defaults.DEPTH_CACHE_TTL_MS
    reconnect_delay_ms: int = Defaults.RECONNECT_DELAY_MS
    request_timeout_ms: int = Defaults.REQUEST_TIMEOUT_MS
    listen_key_keepalive_sec: int = Defaults.LISTEN_KEY_KEEPALIVE_SEC

    @property
    def has_credentials(self) -> bool:
        """API 키/시크릿 모두 설정되었는지 여부"""
        return bool(self.api_key) and bool(self.api_secret)

    def with_overrides(self, **overrides: Any) -> "ConnectorConfig":
        """일부 값만 바꾼 새 설정 반환"""
        return replace(self, **overrides)


class ConfigLoadError(Exception):
    """설정 로드 실패 예외"""

    pass


# YAML에서 덮어쓸 수 있는 정수 필드
_INT_FIELDS = (
    "depth_limit",
    "symbol_cache_ttl_ms",
    "depth_cache_ttl_ms",
    "reconnect_delay_ms",
    "request_timeout_ms",
    "listen_key_keepalive_sec",
)


def get_endpoints(mode: TradingMode) -> tuple[str, str]:
    """모드에 따른 (REST URL, WebSocket URL) 반환"""
    if mode == TradingMode.PRODUCTION:
        return BinanceEndpoints.PROD_REST_URL, BinanceEndpoints.PROD_WS_URL
    return BinanceEndpoints.TEST_REST_URL, BinanceEndpoints.TEST_WS_URL


def parse_config(data: dict[str, Any]) -> ConnectorConfig:
    """딕셔너리에서 ConnectorConfig 생성

    Args:
        data: YAML에서 읽은 딕셔너리

    Returns:
        ConnectorConfig 인스턴스

    Raises:
        ConfigLoadError: 형식이 잘못된 경우
        ValueError: 유효하지 않은 mode인 경우
    """
    mode_str = data.get("mode", TradingMode.PRODUCTION.value)
    try:
        mode = TradingMode(mode_str)
    except ValueError as e:
        valid_modes = [m.value for m in TradingMode]
        raise ValueError(
            f"유효하지 않은 mode입니다: '{mode_str}'. "
            f"유효한 값: {valid_modes}"
        ) from e

    rest_url, ws_url = get_endpoints(mode)
    values: dict[str, Any] = {
        "rest_url": data.get("rest_url") or rest_url,
        "ws_url": data.get("ws_url") or ws_url,
    }

    auth = data.get("auth") or {}
    if not isinstance(auth, dict):
        raise ConfigLoadError("'auth'는 access/secret을 가진 매핑이어야 합니다")
    access = auth.get("access")
    secret = auth.get("secret")
    if bool(access) != bool(secret):
        raise ConfigLoadError("auth.access와 auth.secret은 함께 설정해야 합니다")
    values["api_key"] = access or None
    values["api_secret"] = secret or None

    for key in _INT_FIELDS:
        if key not in data:
            continue
        try:
            values[key] = int(data[key])
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(f"'{key}'는 정수여야 합니다: {data[key]!r}") from e

    return ConnectorConfig(**values)


def load_config(path: Path | None = None) -> ConnectorConfig:
    """connector.yaml 파일 로드

    Args:
        path: connector.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        ConnectorConfig 인스턴스

    Raises:
        ConfigLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.CONFIG_FILE

    if not path.exists():
        raise ConfigLoadError(f"설정 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"설정 파일 파싱 실패: {e}") from e

    if data is None:
        raise ConfigLoadError("설정 파일이 비어 있습니다")
    if not isinstance(data, dict):
        raise ConfigLoadError("설정 파일 최상위는 매핑이어야 합니다")

    return parse_config(data)
