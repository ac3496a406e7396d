"""
Binance Spot 거래소 어댑터

IVenueAdapter Protocol 구현.
REST 클라이언트(서명/엔드포인트)와 스트림 코덱(구독/해석)을 묶어
커넥터 런타임에 제공.
"""

from adapters.binance.rest_client import BinanceRestClient
from adapters.binance.stream_codec import ALLOWED_DEPTH_LIMITS, BinanceStreamCodec
from adapters.interfaces import DecodedFrame, SymbolLookup
from adapters.models import AssetBalance, DepthSnapshot, SymbolInfo
from core.config.loader import ConnectorConfig


class BinanceVenue:
    """Binance Spot 어댑터

    Args:
        rest_client: Binance REST 클라이언트
        ws_base_url: WebSocket 베이스 URL (예: wss://stream.binance.com:9443)
        codec: 스트림 코덱 (None이면 기본 생성)
    """

    name = "Binance"
    allowed_depth_limits = ALLOWED_DEPTH_LIMITS

    def __init__(
        self,
        rest_client: BinanceRestClient,
        ws_base_url: str,
        codec: BinanceStreamCodec | None = None,
    ):
        self.rest_client = rest_client
        self.ws_base_url = ws_base_url.rstrip("/")
        self.codec = codec or BinanceStreamCodec()

    @classmethod
    def from_config(cls, config: ConnectorConfig) -> "BinanceVenue":
        """설정으로 어댑터 생성"""
        rest_client = BinanceRestClient.create(
            base_url=config.rest_url,
            api_key=config.api_key,
            api_secret=config.api_secret,
            timeout_ms=config.request_timeout_ms,
        )
        return cls(rest_client=rest_client, ws_base_url=config.ws_url)

    @property
    def supports_account_stream(self) -> bool:
        """계좌 스트림은 API 키/시크릿이 모두 있어야 사용 가능"""
        return bool(self.rest_client.api_key) and bool(self.rest_client.api_secret)

    # -------------------------------------------------------------------------
    # REST
    # -------------------------------------------------------------------------

    async def list_symbols(self) -> list[SymbolInfo]:
        return await self.rest_client.get_symbols()

    async def fetch_depth_snapshot(self, venue_symbol: str, limit: int) -> DepthSnapshot:
        return await self.rest_client.get_depth(venue_symbol, limit)

    async def fetch_account_snapshot(self) -> list[AssetBalance]:
        return await self.rest_client.get_account_balances()

    # -------------------------------------------------------------------------
    # 스트림
    # -------------------------------------------------------------------------

    def public_channel_uri(self) -> str:
        return f"{self.ws_base_url}/stream"

    async def open_private_channel_uri(self) -> str:
        listen_key = await self.rest_client.create_listen_key()
        return f"{self.ws_base_url}/ws/{listen_key}"

    async def keepalive_private_channel(self) -> None:
        await self.rest_client.extend_listen_key()

    async def close_private_channel(self) -> None:
        await self.rest_client.delete_listen_key()

    def build_subscribe_frame(self, venue_symbols: list[str], depth_limit: int) -> str:
        return self.codec.build_subscribe_frame(venue_symbols, depth_limit)

    def decode_frame(self, raw: str | bytes, lookup: SymbolLookup) -> DecodedFrame:
        return self.codec.decode_frame(raw, lookup)

    async def close(self) -> None:
        await self.rest_client.close()
