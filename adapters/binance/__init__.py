"""
Binance 어댑터

Binance Spot API 연동을 담당.
REST API(시장 데이터, 계좌, listenKey)와 WebSocket 스트림 코덱 지원.
"""

from adapters.binance.rest_client import BinanceRestClient
from adapters.binance.rate_limiter import RateLimitTracker
from adapters.binance.stream_codec import BinanceStreamCodec
from adapters.binance.venue import BinanceVenue

__all__ = [
    "BinanceRestClient",
    "BinanceStreamCodec",
    "BinanceVenue",
    "RateLimitTracker",
]
