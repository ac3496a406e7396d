"""
커넥터 런타임

거래소 어댑터 위에서 심볼/호가/계좌 캐시와 스트림 연결을 관리.
"""

from connector.connector import Connector

__all__ = ["Connector"]
