"""
호가 캐시 테스트

PULL TTL 갱신, PUSH 모드 고정, 페어별 동시 갱신 1회 보장 확인.
"""

import asyncio
from decimal import Decimal

import pytest

from adapters.mock.venue import MockVenue
from adapters.models import DepthUpdate, PriceLevel
from connector.depth_cache import DepthCache
from connector.symbol_cache import SymbolDirectoryCache
from core.types import RefreshMode


def make_cache(venue: MockVenue, clock, ttl_ms: int = 1_000, depth_limit: int = 20) -> DepthCache:
    symbols = SymbolDirectoryCache(venue, clock=clock)
    return DepthCache(venue, symbols, depth_limit=depth_limit, ttl_ms=ttl_ms, clock=clock)


def make_update(pair: str, price: str) -> DepthUpdate:
    level = (PriceLevel(Decimal(price), Decimal("1")),)
    return DepthUpdate(symbol=pair, asks=level, bids=level)


class TestDepthCachePull:
    """PULL 항목 테스트"""

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, mock_venue: MockVenue, clock) -> None:
        cache = make_cache(mock_venue, clock)

        assert await cache.get_depth("FOO", "BAR") is None
        assert mock_venue.state.depth_calls == 0

    @pytest.mark.asyncio
    async def test_first_query_fetches(self, mock_venue: MockVenue, clock) -> None:
        cache = make_cache(mock_venue, clock)

        entry = await cache.get_depth("BTC", "USDT")

        assert entry.symbol == "BTC-USDT"
        assert entry.refresh_mode == RefreshMode.PULL
        assert entry.last_updated == clock()
        assert len(entry.asks) == 20
        assert len(entry.bids) == 20
        assert mock_venue.state.depth_calls == 1

    @pytest.mark.asyncio
    async def test_depth_limit_passed_to_venue(self, mock_venue: MockVenue, clock) -> None:
        cache = make_cache(mock_venue, clock, depth_limit=5)

        entry = await cache.get_depth("BTC", "USDT")

        assert len(entry.asks) == 5

    @pytest.mark.asyncio
    async def test_within_ttl_no_second_call(self, mock_venue: MockVenue, clock) -> None:
        """TTL 안에서는 REST 재호출 없음"""
        cache = make_cache(mock_venue, clock, ttl_ms=1_000)
        first = await cache.get_depth("BTC", "USDT")

        clock.advance(1_000)
        second = await cache.get_depth("BTC", "USDT")

        assert second is first
        assert mock_venue.state.depth_calls == 1

    @pytest.mark.asyncio
    async def test_after_ttl_refetch(self, mock_venue: MockVenue, clock) -> None:
        cache = make_cache(mock_venue, clock, ttl_ms=1_000)
        await cache.get_depth("BTC", "USDT")

        clock.advance(1_001)
        entry = await cache.get_depth("BTC", "USDT")

        assert mock_venue.state.depth_calls == 2
        assert entry.last_updated == clock()

    @pytest.mark.asyncio
    async def test_failure_keeps_stale_entry(self, mock_venue: MockVenue, clock) -> None:
        """갱신 실패 시 기존 값 반환"""
        cache = make_cache(mock_venue, clock)
        first = await cache.get_depth("BTC", "USDT")

        mock_venue.state.fail_depth = True
        clock.advance(5_000)
        second = await cache.get_depth("BTC", "USDT")

        assert second is first
        assert mock_venue.state.depth_calls == 2

    @pytest.mark.asyncio
    async def test_failure_on_first_query_returns_empty_entry(
        self, mock_venue: MockVenue, clock
    ) -> None:
        mock_venue.state.fail_depth = True
        cache = make_cache(mock_venue, clock)

        entry = await cache.get_depth("BTC", "USDT")

        assert entry.last_updated == 0
        assert entry.asks == ()

    @pytest.mark.asyncio
    async def test_single_flight_per_pair(self, mock_venue: MockVenue, clock) -> None:
        """같은 페어 동시 조회는 REST 1회"""
        original = mock_venue.fetch_depth_snapshot

        async def slow_fetch(venue_symbol: str, limit: int):
            await asyncio.sleep(0.01)
            return await original(venue_symbol, limit)

        mock_venue.fetch_depth_snapshot = slow_fetch
        cache = make_cache(mock_venue, clock)
        await cache.symbols.all()

        await asyncio.gather(
            *(cache.get_depth("BTC", "USDT") for _ in range(5)),
            cache.get_depth("ETH", "USDT"),
        )

        assert mock_venue.state.depth_calls == 2


class TestDepthCachePush:
    """PUSH 항목 테스트"""

    @pytest.mark.asyncio
    async def test_mark_push_idempotent(self, mock_venue: MockVenue, clock) -> None:
        cache = make_cache(mock_venue, clock)

        assert cache.mark_push("BTC-USDT") is True
        assert cache.mark_push("BTC-USDT") is False
        assert cache.push_pairs() == ["BTC-USDT"]

    @pytest.mark.asyncio
    async def test_push_entry_never_fetches(self, mock_venue: MockVenue, clock) -> None:
        """PUSH 항목은 오래되어도 REST 호출 없음"""
        cache = make_cache(mock_venue, clock)
        cache.mark_push("BTC-USDT")

        clock.advance(60_000)
        entry = await cache.get_depth("BTC", "USDT")

        assert entry.refresh_mode == RefreshMode.PUSH
        assert mock_venue.state.depth_calls == 0

    @pytest.mark.asyncio
    async def test_mode_is_sticky(self, mock_venue: MockVenue, clock) -> None:
        """PULL -> PUSH 전환 후 되돌아가지 않음"""
        cache = make_cache(mock_venue, clock)
        await cache.get_depth("BTC", "USDT")
        cache.mark_push("BTC-USDT")

        for _ in range(3):
            clock.advance(10_000)
            entry = await cache.get_depth("BTC", "USDT")
            assert entry.refresh_mode == RefreshMode.PUSH

        assert mock_venue.state.depth_calls == 1

    def test_apply_update_replaces_book(self, mock_venue: MockVenue, clock) -> None:
        cache = make_cache(mock_venue, clock)
        cache.mark_push("BTC-USDT")

        entry = cache.apply_update(make_update("BTC-USDT", "123"))

        assert entry.asks[0].price == Decimal("123")
        assert entry.bids[0].price == Decimal("123")
        assert entry.last_updated == clock()
        assert cache.get_entry("BTC-USDT") is entry

    def test_apply_update_ignored_for_pull(self, mock_venue: MockVenue, clock) -> None:
        """구독하지 않은 페어의 프레임은 무시"""
        cache = make_cache(mock_venue, clock)

        assert cache.apply_update(make_update("BTC-USDT", "1")) is None
        assert cache.get_entry("BTC-USDT") is None

    @pytest.mark.asyncio
    async def test_push_during_refresh_wins(self, mock_venue: MockVenue, clock) -> None:
        """REST 갱신 도중 PUSH로 바뀌면 REST 결과는 버림"""
        cache = make_cache(mock_venue, clock)
        await cache.symbols.all()
        original = mock_venue.fetch_depth_snapshot

        async def fetch_then_push(venue_symbol: str, limit: int):
            cache.mark_push("BTC-USDT")
            cache.apply_update(make_update("BTC-USDT", "7"))
            return await original(venue_symbol, limit)

        mock_venue.fetch_depth_snapshot = fetch_then_push

        entry = await cache.get_depth("BTC", "USDT")

        assert entry.refresh_mode == RefreshMode.PUSH
        assert entry.asks[0].price == Decimal("7")
