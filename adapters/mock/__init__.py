"""
Mock 어댑터

테스트용 Mock 구현체 제공.
Protocol 준수하여 실제 구현체와 교체 가능.
"""

from adapters.mock.stream import MockStreamConnection, MockStreamServer
from adapters.mock.venue import MockVenue, MockVenueState, make_levels

__all__ = [
    "MockStreamConnection",
    "MockStreamServer",
    "MockVenue",
    "MockVenueState",
    "make_levels",
]
