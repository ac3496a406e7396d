"""
HTTP 전송 클라이언트

원격 호스트로 요청/응답 호출을 수행하고 결과를 FetchResult로 분류.
거래소 규칙(서명, 헤더 등)은 모르며 거래소 어댑터가 조립한 요청을 그대로 보냄.

분류 규칙:
- 2xx + JSON 본문 → ok
- 에러 상태 코드, JSON 아닌 본문, 전송 예외 → error (진단 메시지)
- 타임아웃 → error "Timeout" (다른 전송 에러와 구분)
"""

import asyncio
import logging
from typing import Any

import httpx

from adapters.models import FetchResult
from core.constants import Defaults
from core.errors import TIMEOUT_MESSAGE

logger = logging.getLogger(__name__)


class HttpTransport:
    """비동기 HTTP 전송 클라이언트

    Args:
        base_url: REST 호스트 (예: https://api.binance.com)
        timeout_ms: 요청 타임아웃 (밀리초)
        client: 외부에서 주입할 httpx.AsyncClient (테스트용, None이면 lazy 생성)
    """

    def __init__(
        self,
        base_url: str,
        timeout_ms: int = Defaults.REQUEST_TIMEOUT_MS,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        self._client = client

        # 호출 횟수 (캐시 동작 검증용)
        self.request_count = 0

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 가져오기 (lazy initialization)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient()
        return self._client

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        query_string: str = "",
        headers: dict[str, str] | None = None,
    ) -> FetchResult:
        """요청 실행

        Args:
            method: HTTP 메서드
            path: API 경로 (예: /api/v3/depth)
            query_string: 이미 인코딩된 쿼리 문자열 (서명 대상과 동일해야 하므로 재인코딩 안 함)
            headers: 추가 헤더

        Returns:
            FetchResult
        """
        url = f"{self.base_url}{path}"
        if query_string:
            url = f"{url}?{query_string}"

        self.request_count += 1
        client = await self._get_client()
        timeout_sec = self.timeout_ms / 1000

        logger.debug(f"{method} {url}")

        try:
            # wait_for가 만료되면 진행 중인 요청을 취소함
            response = await asyncio.wait_for(
                client.request(method, url, headers=headers, timeout=timeout_sec),
                timeout=timeout_sec,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(
                "Request timeout",
                extra={"method": method, "path": path, "timeout_ms": self.timeout_ms},
            )
            return FetchResult.failure(TIMEOUT_MESSAGE)
        except httpx.HTTPError as e:
            logger.error(
                "Request error",
                extra={"method": method, "path": path, "error": str(e)},
            )
            return FetchResult.failure(f"{type(e).__name__}: {e}")

        logger.debug(f"{method} {url} #{response.status_code}")
        return self._classify(response)

    def _classify(self, response: httpx.Response) -> FetchResult:
        """응답을 FetchResult로 분류"""
        status = response.status_code
        headers = {k.lower(): v for k, v in response.headers.items()}
        content_type = headers.get("content-type", "")

        if "application/json" not in content_type:
            return FetchResult.failure(
                f"HTTP {status} non-JSON response: {response.text[:200]}",
                status_code=status,
                headers=headers,
            )

        try:
            data: Any = response.json()
        except ValueError as e:
            return FetchResult.failure(
                f"HTTP {status} invalid JSON: {e}", status_code=status, headers=headers
            )

        if status >= 400 or status < 200:
            # Binance 에러 본문: {"code": -1121, "msg": "Invalid symbol."}
            if isinstance(data, dict) and "msg" in data:
                message = f"HTTP {status} [{data.get('code')}] {data['msg']}"
            else:
                message = f"HTTP {status}: {data}"
            return FetchResult.failure(message, status_code=status, headers=headers)

        return FetchResult.success(data, status_code=status, headers=headers)
