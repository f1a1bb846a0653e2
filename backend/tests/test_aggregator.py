"""
Market Data Aggregator Tests

Fallback order, synthetic safety net, search short-circuit, history
capping and options capability absence, using in-process fake providers.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import FakeProvider, make_quote
from thetaflowz.data.base import QuoteProvider
from thetaflowz.engines.market_data import MAJOR_SYMBOLS, MarketDataAggregator
from thetaflowz.errors import CapabilityUnavailable
from thetaflowz.models import HistoricalBar, SymbolMatch

DAY = date(2024, 6, 3)


def _aggregator(*providers, **kwargs) -> MarketDataAggregator:
    kwargs.setdefault("timeout", 1.0)
    return MarketDataAggregator(list(providers), today=lambda: DAY, **kwargs)


def _bars(n: int) -> list[HistoricalBar]:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        HistoricalBar(date=start + timedelta(days=i), open=1, high=2, low=0.5, close=float(i), volume=10)
        for i in range(n)
    ]


class SlowProvider(QuoteProvider):
    name = "slow"

    async def get_quote(self, symbol):
        await asyncio.sleep(5)


# ──────────────────────────────────────────────
# Quotes
# ──────────────────────────────────────────────

class TestGetQuote:

    def test_first_provider_wins(self):
        a = FakeProvider("a", quotes={"AAPL": make_quote(190.0)})
        b = FakeProvider("b", quotes={"AAPL": make_quote(191.0)})
        quote = asyncio.run(_aggregator(a, b).get_quote(" aapl "))
        assert quote.source == "a"
        assert quote.price == 190.0
        assert b.calls["quote"] == 0

    def test_falls_through_in_order(self):
        a = FakeProvider("a", fail=True)
        b = FakeProvider("b", fail=True)
        c = FakeProvider("c", quotes={"AAPL": make_quote(150.0)})
        quote = asyncio.run(_aggregator(a, b, c).get_quote("AAPL"))
        assert quote.source == "c"
        assert (a.calls["quote"], b.calls["quote"], c.calls["quote"]) == (1, 1, 1)

    def test_total_failure_returns_synthetic(self):
        agg = _aggregator(FakeProvider("a", fail=True), FakeProvider("b", fail=True))
        quote = asyncio.run(agg.get_quote("AAPL"))
        assert quote.source == "synthetic"
        assert quote.is_synthetic
        assert quote.price is not None and quote.price > 0
        assert quote.symbol == "AAPL"

    def test_synthetic_is_deterministic_per_day(self):
        agg = _aggregator(FakeProvider("a", fail=True))
        first = asyncio.run(agg.get_quote("ZZZZ"))
        second = asyncio.run(agg.get_quote("ZZZZ"))
        assert first == second

    def test_no_providers_still_answers(self):
        quote = asyncio.run(_aggregator().get_quote("MSFT"))
        assert quote.is_synthetic

    def test_timeout_counts_as_failure(self):
        backup = FakeProvider("backup", quotes={"AAPL": make_quote(100.0)})
        agg = _aggregator(SlowProvider(), backup, timeout=0.05)
        quote = asyncio.run(agg.get_quote("AAPL"))
        assert quote.source == "backup"

    def test_unexpected_adapter_exception_falls_through(self):
        class Broken(QuoteProvider):
            name = "broken"

            async def get_quote(self, symbol):
                raise KeyError("c")

        backup = FakeProvider("backup", quotes={"AAPL": make_quote(100.0)})
        assert asyncio.run(_aggregator(Broken(), backup).get_quote("AAPL")).source == "backup"

    def test_open_circuit_skips_provider(self):
        a = FakeProvider("a", fail=True)
        b = FakeProvider("b", quotes={"AAPL": make_quote(100.0)})
        agg = _aggregator(a, b, failure_threshold=2)
        for _ in range(4):
            asyncio.run(agg.get_quote("AAPL"))
        assert a.calls["quote"] == 2
        assert agg.provider_status() == {"a": "open", "b": "closed"}

    def test_unknown_ticker_does_not_open_circuit(self):
        live = FakeProvider("live", quotes={"AAPL": make_quote(190.0)})
        agg = _aggregator(live, failure_threshold=5)
        for _ in range(6):
            assert asyncio.run(agg.get_quote("ZZZZ")).is_synthetic
        assert agg.provider_status() == {"live": "closed"}

        quote = asyncio.run(agg.get_quote("AAPL"))
        assert quote.source == "live"
        assert quote.price == 190.0

    def test_empty_symbol_rejected(self):
        with pytest.raises(ValueError):
            asyncio.run(_aggregator().get_quote("  "))

    def test_get_quotes_keeps_order_with_independent_fallback(self):
        a = FakeProvider("a", quotes={"MSFT": make_quote(420.0)})
        quotes = asyncio.run(_aggregator(a).get_quotes(["AAPL", "MSFT", "TSLA"]))
        assert [q.symbol for q in quotes] == ["AAPL", "MSFT", "TSLA"]
        assert [q.source for q in quotes] == ["synthetic", "a", "synthetic"]

    def test_market_summary(self):
        quotes = asyncio.run(_aggregator().get_market_summary())
        assert [q.symbol for q in quotes] == list(MAJOR_SYMBOLS)
        assert quotes[0].long_name == "Apple Inc."


# ──────────────────────────────────────────────
# Search
# ──────────────────────────────────────────────

class TestSearch:

    @pytest.mark.parametrize("query", ["", "   ", None])
    def test_empty_query_makes_no_provider_call(self, query):
        provider = FakeProvider("a", matches=[SymbolMatch(symbol="AAPL", name="Apple")])
        assert asyncio.run(_aggregator(provider).search_symbols(query)) == []
        assert provider.calls["search"] == 0

    def test_results_capped_at_five(self):
        matches = [SymbolMatch(symbol=f"S{i}", name=f"Stock {i}") for i in range(8)]
        result = asyncio.run(_aggregator(FakeProvider("a", matches=matches)).search_symbols("s"))
        assert len(result) == 5

    def test_providers_without_search_skipped(self):
        no_search = FakeProvider("a", supports_search=False)
        with_search = FakeProvider("b", matches=[SymbolMatch(symbol="AAPL", name="Apple")])
        result = asyncio.run(_aggregator(no_search, with_search).search_symbols("apple"))
        assert result[0].symbol == "AAPL"
        assert no_search.calls["search"] == 0

    def test_empty_result_falls_through(self):
        empty = FakeProvider("a", matches=[])
        full = FakeProvider("b", matches=[SymbolMatch(symbol="MSFT", name="Microsoft")])
        result = asyncio.run(_aggregator(empty, full).search_symbols("micro"))
        assert [m.symbol for m in result] == ["MSFT"]

    def test_exhaustion_returns_defaults(self):
        result = asyncio.run(_aggregator(FakeProvider("a", fail=True)).search_symbols("zzz"))
        assert [m.symbol for m in result] == ["SPY", "SPXL", "SPXS", "AAPL", "MSFT"]

    def test_exhaustion_defaults_narrowed_by_query(self):
        result = asyncio.run(_aggregator().search_symbols("spx"))
        assert [m.symbol for m in result] == ["SPXL", "SPXS"]


# ──────────────────────────────────────────────
# History and options
# ──────────────────────────────────────────────

class TestHistory:

    def test_capped_at_thirty_most_recent(self):
        provider = FakeProvider("a", bars=_bars(60))
        series = asyncio.run(_aggregator(provider).get_historical_data("AAPL", period="1y"))
        assert len(series.bars) == 30
        assert series.bars[-1].close == 59.0
        assert series.source == "a"
        assert not series.is_synthetic

    def test_five_day_period(self):
        series = asyncio.run(_aggregator(FakeProvider("a", bars=_bars(60))).get_historical_data("AAPL", "5d"))
        assert len(series.bars) == 5

    def test_exhaustion_builds_synthetic_series(self):
        series = asyncio.run(_aggregator(FakeProvider("a", fail=True)).get_historical_data("AAPL"))
        assert series.is_synthetic
        assert len(series.bars) == 30
        dates = [b.date for b in series.bars]
        assert dates == sorted(dates)
        assert all(d.weekday() < 5 for d in dates)
        assert dates[-1].date() < DAY

    def test_providers_without_history_skipped(self):
        provider = FakeProvider("a", bars=_bars(10), supports_history=False)
        series = asyncio.run(_aggregator(provider).get_historical_data("AAPL"))
        assert series.is_synthetic
        assert provider.calls["history"] == 0


class TestOptions:

    def test_no_options_provider_raises_capability_unavailable(self):
        with pytest.raises(CapabilityUnavailable) as exc_info:
            asyncio.run(_aggregator(FakeProvider("a")).get_options_chain("AAPL"))
        assert exc_info.value.capability == "options"
        assert exc_info.value.symbol == "AAPL"
