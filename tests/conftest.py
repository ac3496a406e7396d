"""
pytest 공통 fixture 정의

설정 파일 / 시계 등 모든 테스트에서 쓰는 fixture
"""

import tempfile
from pathlib import Path

import pytest


class FakeClock:
    """수동으로 진행시키는 밀리초 시계"""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def temp_dir() -> Path:
    """OS 독립적인 임시 디렉토리 생성"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FakeClock:
    """테스트용 시계"""
    return FakeClock()


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """테스트용 connector.yaml 파일 생성 (testnet + 인증 정보)"""
    config_content = """# 테스트용 connector.yaml
mode: testnet

auth:
  access: "test_api_key_abcde"
  secret: "test_api_secret_fghij"

depth_limit: 10
symbol_cache_ttl_ms: 30000
reconnect_delay_ms: 500
"""
    config_path = temp_dir / "connector.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


@pytest.fixture
def temp_config_file_public(temp_dir: Path) -> Path:
    """인증 정보 없는 connector.yaml (production)"""
    config_content = """mode: production
"""
    config_path = temp_dir / "connector_public.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


@pytest.fixture
def temp_config_file_invalid_mode(temp_dir: Path) -> Path:
    """잘못된 모드의 connector.yaml 파일 생성"""
    config_content = """mode: invalid_mode
"""
    config_path = temp_dir / "connector_invalid.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path
