"""
Watchlist Service Tests

Validation, idempotent add, removal and refresh, persisted through an
in-memory store.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeProvider, make_quote
from thetaflowz.engines.market_data import MarketDataAggregator
from thetaflowz.engines.watchlist import WatchlistService
from thetaflowz.errors import WatchlistValidationError
from thetaflowz.models import Quote
from thetaflowz.storage import MemoryStorage, WatchlistStore


@pytest.fixture
def provider():
    return FakeProvider("live", quotes={
        "AAPL": make_quote(190.0),
        "MSFT": make_quote(420.0),
        "BRK.B": make_quote(410.0),
    })


@pytest.fixture
def store():
    return WatchlistStore(MemoryStorage())


@pytest.fixture
def service(store, provider, clock):
    return WatchlistService(store, MarketDataAggregator([provider], timeout=1.0), clock=clock)


class TestAdd:

    def test_add_persists_entry(self, service, store, clock):
        entry = asyncio.run(service.add("aapl"))
        assert entry.symbol == "AAPL"
        assert entry.name == "Apple Inc."
        assert entry.price == 190.0
        assert entry.added_at == clock.now
        assert [e.symbol for e in store.load()] == ["AAPL"]

    def test_add_is_idempotent(self, service, store, provider):
        first = asyncio.run(service.add("AAPL"))
        second = asyncio.run(service.add(" aapl "))
        assert second == first
        assert len(store.load()) == 1
        assert provider.calls["quote"] == 1

    def test_order_is_insertion_order(self, service):
        for sym in ("MSFT", "AAPL", "BRK.B"):
            asyncio.run(service.add(sym))
        assert [e.symbol for e in service.load()] == ["MSFT", "AAPL", "BRK.B"]

    @pytest.mark.parametrize("bad", ["", "TOOLONG", "12AB", "A-B", "BRK.BBB"])
    def test_malformed_ticker_rejected(self, service, store, bad):
        with pytest.raises(WatchlistValidationError):
            asyncio.run(service.add(bad))
        assert store.load() == []

    def test_unknown_symbol_still_added_with_synthetic_price(self, service):
        entry = asyncio.run(service.add("ZZZZ"))
        assert entry.source == "synthetic"
        assert entry.price is not None

    def test_quote_without_price_rejected(self, store, clock):
        class NoPriceAggregator(MarketDataAggregator):
            async def get_quote(self, symbol):
                return Quote(symbol=symbol.upper(), source="noprice")

        service = WatchlistService(store, NoPriceAggregator([]), clock=clock)
        with pytest.raises(WatchlistValidationError):
            asyncio.run(service.add("AAPL"))
        assert store.load() == []


class SlowAggregator(MarketDataAggregator):
    """Yields to the event loop mid-quote so overlapping calls interleave."""

    async def get_quote(self, symbol):
        await asyncio.sleep(0.01)
        return await super().get_quote(symbol)

    async def get_quotes(self, symbols):
        await asyncio.sleep(0.01)
        return await super().get_quotes(symbols)


class TestConcurrentMutations:

    @pytest.fixture
    def slow_service(self, store, provider, clock):
        return WatchlistService(store, SlowAggregator([provider], timeout=1.0), clock=clock)

    def test_overlapping_adds_keep_both(self, slow_service, store):
        async def both():
            await asyncio.gather(slow_service.add("AAPL"), slow_service.add("MSFT"))

        asyncio.run(both())
        assert sorted(e.symbol for e in store.load()) == ["AAPL", "MSFT"]

    def test_overlapping_duplicate_adds_store_once(self, slow_service, store, provider):
        async def twice():
            return await asyncio.gather(slow_service.add("AAPL"), slow_service.add("aapl"))

        first, second = asyncio.run(twice())
        assert first == second
        assert [e.symbol for e in store.load()] == ["AAPL"]
        assert provider.calls["quote"] == 1

    def test_remove_during_add_is_not_overwritten(self, slow_service, store):
        asyncio.run(slow_service.add("MSFT"))

        async def interleave():
            await asyncio.gather(slow_service.add("AAPL"), slow_service.remove("MSFT"))

        asyncio.run(interleave())
        assert [e.symbol for e in store.load()] == ["AAPL"]


class TestRemove:

    def test_remove_present(self, service):
        asyncio.run(service.add("AAPL"))
        asyncio.run(service.add("MSFT"))
        assert asyncio.run(service.remove("aapl")) is True
        assert [e.symbol for e in service.load()] == ["MSFT"]

    def test_remove_absent_is_noop(self, service):
        asyncio.run(service.add("AAPL"))
        assert asyncio.run(service.remove("TSLA")) is False
        assert [e.symbol for e in service.load()] == ["AAPL"]


class TestRefresh:

    def test_refresh_updates_prices_keeps_added_at(self, service, provider, clock):
        asyncio.run(service.add("AAPL"))
        added = service.load()[0].added_at

        provider.quotes["AAPL"] = make_quote(200.0)
        clock.advance(hours=2)
        refreshed = asyncio.run(service.refresh())

        assert refreshed[0].price == 200.0
        assert refreshed[0].added_at == added
        assert service.load()[0].price == 200.0

    def test_refresh_empty(self, service):
        assert asyncio.run(service.refresh()) == []
