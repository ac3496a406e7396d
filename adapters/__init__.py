"""
어댑터 레이어

외부 거래소(REST/WebSocket)와의 연동을 담당.
Protocol 기반 인터페이스로 Mock 교체 가능.
"""

from adapters.interfaces import (
    IStreamConnection,
    IVenueAdapter,
    StreamConnector,
)
from adapters.models import (
    AccountState,
    AssetBalance,
    BalanceUpdate,
    DepthEntry,
    DepthUpdate,
    OrderEvent,
    PriceLevel,
    SymbolEntry,
    SymbolInfo,
)

__all__ = [
    # Interfaces
    "IVenueAdapter",
    "IStreamConnection",
    "StreamConnector",
    # Models
    "AccountState",
    "AssetBalance",
    "BalanceUpdate",
    "DepthEntry",
    "DepthUpdate",
    "OrderEvent",
    "PriceLevel",
    "SymbolEntry",
    "SymbolInfo",
]
