"""
커넥터 테스트 픽스처

Mock 거래소 / Mock 스트림 서버 / 조건 대기 헬퍼 제공.
"""

import asyncio
from typing import Callable

import pytest
import pytest_asyncio

from adapters.mock.stream import MockStreamServer
from adapters.mock.venue import MockVenue, make_levels
from connector.connector import Connector


@pytest.fixture
def mock_venue() -> MockVenue:
    """BTCUSDT / ETHUSDT 20단계 호가를 가진 Mock 거래소"""
    venue = MockVenue()
    venue.set_depth("BTCUSDT", asks=make_levels(20, "50001", "1"), bids=make_levels(20, "50000", "-1"))
    venue.set_depth("ETHUSDT", asks=make_levels(20, "3001", "1"), bids=make_levels(20, "3000", "-1"))
    return venue


@pytest.fixture
def stream_server() -> MockStreamServer:
    """Mock 스트림 서버"""
    return MockStreamServer()


@pytest_asyncio.fixture
async def mock_connector(mock_venue: MockVenue, stream_server: MockStreamServer, clock):
    """Mock 거래소 커넥터 (재연결 지연 10ms)"""
    conn = Connector(
        mock_venue,
        reconnect_delay_ms=10,
        stream_connector=stream_server.connect,
        clock=clock,
    )
    yield conn
    await conn.destroy()


@pytest.fixture
def eventually() -> Callable:
    """조건이 참이 될 때까지 이벤트 루프를 양보"""

    async def _eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _eventually
