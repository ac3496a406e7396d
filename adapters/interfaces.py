"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
커넥터 런타임(connector 패키지)은 이 Protocol에만 의존하며
특정 거래소 구현을 직접 참조하지 않음.
"""

from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Protocol,
    Union,
    runtime_checkable,
)

if TYPE_CHECKING:
    from adapters.models import (
        AssetBalance,
        BalanceUpdate,
        DepthSnapshot,
        DepthUpdate,
        OrderEvent,
        SymbolInfo,
    )


# 스트림 프레임 디코딩 결과 (None이면 라우팅 대상 아님)
DecodedFrame = Union["DepthUpdate", "BalanceUpdate", "OrderEvent", None]

# 심볼 역조회 (거래소 심볼 -> 정규화 페어)
SymbolLookup = Callable[[str], "str | None"]


@runtime_checkable
class IVenueAdapter(Protocol):
    """거래소 어댑터 인터페이스 (capability set)

    모든 거래소 구현체는 이 Protocol을 구현해야 함.
    REST 실패는 TransportError로 전달.
    """

    name: str
    allowed_depth_limits: tuple[int, ...]
    supports_account_stream: bool

    # -------------------------------------------------------------------------
    # REST
    # -------------------------------------------------------------------------

    async def list_symbols(self) -> list["SymbolInfo"]:
        """거래 가능한 심볼 목록 조회

        Raises:
            TransportError: 요청 실패 시
        """
        ...

    async def fetch_depth_snapshot(self, venue_symbol: str, limit: int) -> "DepthSnapshot":
        """호가 스냅샷 조회

        Args:
            venue_symbol: 거래소 심볼 (예: BTCUSDT)
            limit: 호가 단계 수

        Raises:
            TransportError: 요청 실패 시
        """
        ...

    async def fetch_account_snapshot(self) -> list["AssetBalance"]:
        """계좌 잔고 스냅샷 조회 (인증 필요)

        Raises:
            ConfigurationError: 인증 정보가 없을 때
            TransportError: 요청 실패 시
        """
        ...

    # -------------------------------------------------------------------------
    # 스트림
    # -------------------------------------------------------------------------

    def public_channel_uri(self) -> str:
        """공개 스트림 URI"""
        ...

    async def open_private_channel_uri(self) -> str:
        """개인 스트림 URI (listenKey 발급 포함)"""
        ...

    async def keepalive_private_channel(self) -> None:
        """listenKey 유효기간 연장"""
        ...

    async def close_private_channel(self) -> None:
        """listenKey 삭제 (실패해도 무방)"""
        ...

    def build_subscribe_frame(self, venue_symbols: list[str], depth_limit: int) -> str:
        """호가 구독 메시지 생성"""
        ...

    def decode_frame(self, raw: str | bytes, lookup: SymbolLookup) -> DecodedFrame:
        """수신 프레임 해석

        Returns:
            DepthUpdate / BalanceUpdate / OrderEvent / None(하트비트, 응답 등)

        Raises:
            DecodeError: 프레임을 해석할 수 없을 때
        """
        ...

    async def close(self) -> None:
        """HTTP 리소스 정리"""
        ...


@runtime_checkable
class IStreamConnection(Protocol):
    """양방향 스트림 연결 (websockets 클라이언트 연결과 호환)

    async for로 텍스트 프레임을 수신하며, 상대가 닫으면 반복이 끝나거나
    ConnectionClosed 예외가 발생.
    """

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        ...

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...


# 스트림 연결 팩토리 (URI -> 열린 연결)
StreamConnector = Callable[[str], Awaitable[IStreamConnection]]

# 소비자 이벤트 핸들러 (동기 함수 또는 코루틴 함수)
EventHandler = Callable[..., Any]
