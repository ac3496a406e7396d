"""
Mock 스트림 연결

IStreamConnection Protocol을 따르는 큐 기반 메모리 연결과
연결을 기록하는 서버(연결 팩토리).
"""

import asyncio
import json
from typing import Any

# 큐에 넣으면 수신 반복을 끝내는 표식
_CLOSE = object()


class MockStreamConnection:
    """큐 기반 Mock 스트림 연결

    inject()로 넣은 프레임을 async for로 순서대로 돌려주며,
    close() 또는 simulate_drop() 이후 반복이 끝남.
    """

    def __init__(self, uri: str):
        self.uri = uri
        self.sent: list[str] = []
        self.closed = False
        self.closed_by_client = False
        self._queue: asyncio.Queue[Any] = asyncio.Queue()

    def __aiter__(self) -> "MockStreamConnection":
        return self

    async def __anext__(self) -> str:
        item = await self._queue.get()
        if item is _CLOSE:
            # 닫힌 뒤에도 반복하면 계속 종료
            self._queue.put_nowait(_CLOSE)
            raise StopAsyncIteration
        return item

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionError("Connection closed")
        self.sent.append(message)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.closed_by_client = True
            self._queue.put_nowait(_CLOSE)

    # -------------------------------------------------------------------------
    # 테스트용
    # -------------------------------------------------------------------------

    def inject(self, message: str | dict[str, Any]) -> None:
        """수신 프레임 주입"""
        if isinstance(message, dict):
            message = json.dumps(message)
        self._queue.put_nowait(message)

    def simulate_drop(self) -> None:
        """상대방 종료 시뮬레이션"""
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_CLOSE)

    @property
    def sent_json(self) -> list[dict[str, Any]]:
        """전송 메시지 (JSON 파싱)"""
        return [json.loads(message) for message in self.sent]


class MockStreamServer:
    """Mock 연결 팩토리

    connect를 StreamConnector로 주입하면 열린 연결을 모두 기록.
    fail_next > 0이면 그 횟수만큼 연결 실패.
    """

    def __init__(self) -> None:
        self.connections: list[MockStreamConnection] = []
        self.fail_next = 0

    async def connect(self, uri: str) -> MockStreamConnection:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise ConnectionRefusedError(f"Mock connect refused: {uri}")
        connection = MockStreamConnection(uri)
        self.connections.append(connection)
        return connection

    def connections_to(self, prefix: str) -> list[MockStreamConnection]:
        """URI 접두어로 연결 필터링"""
        return [c for c in self.connections if c.uri.startswith(prefix)]

    @property
    def latest(self) -> MockStreamConnection:
        """가장 최근 연결"""
        return self.connections[-1]
