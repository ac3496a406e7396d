"""
Binance Spot REST API 클라이언트

요청 서명(HMAC-SHA256), Rate Limit 추적, Decimal 변환 담당.
실제 HTTP 호출은 HttpTransport에 위임.
"""

import hashlib
import hmac
from typing import Any
from urllib.parse import quote

from adapters.binance.models import (
    parse_account_balances,
    parse_depth,
    parse_symbols,
)
from adapters.binance.rate_limiter import RateLimitTracker
from adapters.models import AssetBalance, DepthSnapshot, FetchResult, SymbolInfo
from adapters.transport import HttpTransport
from core.constants import Defaults
from core.errors import ConfigurationError, TransportError
from core.logging import get_venue_logger
from core.types import AuthLevel
from core.utils.clock import Clock, now_ms

logger = get_venue_logger(__name__, "Binance")


def build_query_string(query: dict[str, Any] | None) -> str:
    """쿼리 문자열 생성

    삽입 순서 유지, '&'로 연결, 값은 퍼센트 인코딩.
    서명 대상 문자열과 실제 전송 문자열이 같아야 하므로 직접 조립함.

    Example:
        >>> build_query_string({"symbol": "BTCUSDT", "limit": 20})
        'symbol=BTCUSDT&limit=20'
    """
    if not query:
        return ""
    return "&".join(f"{key}={quote(str(value), safe='')}" for key, value in query.items())


class BinanceRestClient:
    """Binance Spot REST API 클라이언트

    Args:
        transport: HTTP 전송 클라이언트
        api_key: API 키 (선택, 인증 요청 시 필수)
        api_secret: API 시크릿 (선택, 서명 요청 시 필수)
        clock: 밀리초 시계 (테스트용)
    """

    def __init__(
        self,
        transport: HttpTransport,
        api_key: str | None = None,
        api_secret: str | None = None,
        clock: Clock = now_ms,
    ):
        self.transport = transport
        self.api_key = api_key
        self.api_secret = api_secret
        self.clock = clock

        self.rate_tracker = RateLimitTracker()
        self._listen_key: str | None = None

    @classmethod
    def create(
        cls,
        base_url: str,
        api_key: str | None = None,
        api_secret: str | None = None,
        timeout_ms: int = Defaults.REQUEST_TIMEOUT_MS,
    ) -> "BinanceRestClient":
        """베이스 URL로 클라이언트 생성"""
        return cls(
            transport=HttpTransport(base_url, timeout_ms=timeout_ms),
            api_key=api_key,
            api_secret=api_secret,
        )

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        await self.transport.close()

    def _generate_signature(self, query_string: str) -> str:
        """HMAC-SHA256 서명 생성

        Args:
            query_string: URL 인코딩된 파라미터 문자열

        Returns:
            16진수 서명 문자열
        """
        assert self.api_secret is not None
        return hmac.new(
            self.api_secret.encode("utf-8"),
            query_string.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def sign(
        self,
        query: dict[str, Any] | None,
        auth: AuthLevel = AuthLevel.NONE,
    ) -> tuple[str, dict[str, str]]:
        """논리 요청 -> (쿼리 문자열, 헤더)

        SIGNED: timestamp를 붙인 뒤 조립된 문자열 전체에 서명하여 signature 추가.
        API_KEY / SIGNED: X-MBX-APIKEY 헤더 첨부.

        Raises:
            ConfigurationError: 인증에 필요한 키가 없을 때
        """
        headers: dict[str, str] = {}
        query_string = build_query_string(query)

        if auth == AuthLevel.NONE:
            return query_string, headers

        if not self.api_key:
            raise ConfigurationError("Binance API 키가 설정되지 않았습니다 (auth.access)")
        headers["X-MBX-APIKEY"] = self.api_key

        if auth == AuthLevel.SIGNED:
            if not self.api_secret:
                raise ConfigurationError("Binance API 시크릿이 설정되지 않았습니다 (auth.secret)")
            timestamp = f"timestamp={self.clock()}"
            query_string = f"{query_string}&{timestamp}" if query_string else timestamp
            query_string += f"&signature={self._generate_signature(query_string)}"

        return query_string, headers

    async def fetch(
        self,
        path: str,
        query: dict[str, Any] | None = None,
        auth: AuthLevel = AuthLevel.NONE,
        method: str = "GET",
    ) -> FetchResult:
        """API 요청 실행

        Args:
            path: API 경로 (예: /api/v3/depth)
            query: 요청 파라미터 (삽입 순서 유지)
            auth: 인증 수준
            method: HTTP 메서드

        Returns:
            FetchResult (실패해도 예외 대신 error 반환)

        Raises:
            ConfigurationError: 인증 요청인데 키가 없을 때
        """
        if self.rate_tracker.should_stop():
            logger.warning(
                "Rate limit threshold reached, request blocked",
                extra={"path": path, "rate_info": self.rate_tracker.to_dict()},
            )
            return FetchResult.failure("Request weight threshold reached")

        query_string, headers = self.sign(query, auth)
        result = await self.transport.request(method, path, query_string, headers)

        if result.headers:
            self.rate_tracker.update_from_headers(result.headers)
            if self.rate_tracker.should_warn():
                logger.warning(
                    "Request weight is high",
                    extra={"rate_info": self.rate_tracker.to_dict()},
                )

        if not result.ok:
            logger.error(f"{method} {path} fail: {result.error}")
        return result

    async def _fetch_data(
        self,
        path: str,
        query: dict[str, Any] | None = None,
        auth: AuthLevel = AuthLevel.NONE,
        method: str = "GET",
    ) -> Any:
        """fetch 후 실패 시 TransportError"""
        result = await self.fetch(path, query, auth, method)
        if not result.ok:
            raise TransportError(result.error or "Unknown error", result.status_code)
        return result.data

    # -------------------------------------------------------------------------
    # 시장 데이터
    # -------------------------------------------------------------------------

    async def get_symbols(self) -> list[SymbolInfo]:
        """거래소 심볼 목록 조회"""
        data = await self._fetch_data("/api/v3/exchangeInfo")
        return parse_symbols(data)

    async def get_depth(self, venue_symbol: str, limit: int) -> DepthSnapshot:
        """호가 조회"""
        data = await self._fetch_data(
            "/api/v3/depth",
            {"symbol": venue_symbol, "limit": limit},
        )
        return parse_depth(data)

    # -------------------------------------------------------------------------
    # 계좌
    # -------------------------------------------------------------------------

    async def get_account_balances(self) -> list[AssetBalance]:
        """계좌 잔고 조회 (잔고 > 0인 것만)"""
        data = await self._fetch_data("/api/v3/account", auth=AuthLevel.SIGNED)
        return parse_account_balances(data)

    # -------------------------------------------------------------------------
    # listenKey 관리 (User Data Stream)
    # -------------------------------------------------------------------------

    async def create_listen_key(self) -> str:
        """listenKey 생성"""
        data = await self._fetch_data(
            "/api/v3/userDataStream", auth=AuthLevel.API_KEY, method="POST"
        )
        self._listen_key = data["listenKey"]
        logger.info("listenKey created")
        return self._listen_key

    async def extend_listen_key(self) -> None:
        """listenKey 유효기간 연장 (60분 만료, 30분마다 호출)"""
        if self._listen_key is None:
            return
        await self._fetch_data(
            "/api/v3/userDataStream",
            {"listenKey": self._listen_key},
            auth=AuthLevel.API_KEY,
            method="PUT",
        )
        logger.debug("listenKey extended")

    async def delete_listen_key(self) -> None:
        """listenKey 삭제"""
        if self._listen_key is None:
            return
        listen_key, self._listen_key = self._listen_key, None
        await self._fetch_data(
            "/api/v3/userDataStream",
            {"listenKey": listen_key},
            auth=AuthLevel.API_KEY,
            method="DELETE",
        )
        logger.info("listenKey deleted")

    # -------------------------------------------------------------------------
    # 컨텍스트 매니저
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> "BinanceRestClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
