"""
ThetaFlowz - Market Data Aggregator

Orchestrates the provider adapters with fixed, total fallback order and a
synthetic safety net, so quote, search and history callers never see a
fetch error. Each provider sits behind its own circuit breaker and every
call carries a bounded timeout; a timeout, an open breaker and a provider
error are all treated the same way: move on to the next provider.
A provider that answers "unknown symbol" is skipped too, but its breaker
does not count that as a failure.

Options chains are the exception: there is no safe synthetic substitute,
so exhaustion raises CapabilityUnavailable.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional, Sequence, TypeVar

import structlog

from thetaflowz.data import synthetic
from thetaflowz.data.base import QuoteProvider
from thetaflowz.data.universe import display_name
from thetaflowz.errors import CapabilityUnavailable, SymbolNotFound
from thetaflowz.models import SYNTHETIC_SOURCE, HistoricalSeries, OptionsChain, Quote, SymbolMatch
from thetaflowz.utils.circuit_breaker import CircuitBreaker, CircuitOpenError
from thetaflowz.utils.validators import normalize_symbol

log = structlog.get_logger(__name__)

T = TypeVar("T")

MAJOR_SYMBOLS: tuple[str, ...] = ("AAPL", "MSFT", "GOOGL", "AMZN", "TSLA")

# Trading sessions returned per requested period; capped by max_history_bars
_PERIOD_BARS = {"5d": 5, "1mo": 30, "3mo": 30, "6mo": 30, "1y": 30}


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class MarketDataAggregator:
    """Single entry point for quotes, search, history and options."""

    def __init__(
        self,
        providers: Sequence[QuoteProvider],
        timeout: float = 8.0,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        search_limit: int = 5,
        max_history_bars: int = 30,
        today: Callable[[], date] | None = None,
    ):
        self._providers = list(providers)
        self._timeout = timeout
        self._search_limit = search_limit
        self._max_history_bars = max_history_bars
        self._today = today or _utc_today
        self._breakers = {
            p.name: CircuitBreaker(
                p.name, failure_threshold, recovery_timeout, excluded=(SymbolNotFound,),
            )
            for p in self._providers
        }

    @property
    def providers(self) -> list[QuoteProvider]:
        return list(self._providers)

    def provider_status(self) -> dict[str, str]:
        """Current breaker state per provider, in fallback order."""
        return {name: cb.state.name.lower() for name, cb in self._breakers.items()}

    # ── Fallback core ──

    async def _first_success(
        self,
        operation: str,
        subject: str,
        call: Callable[[QuoteProvider], Awaitable[T]],
        capable: Callable[[QuoteProvider], bool] = lambda p: True,
        accept: Callable[[T], bool] = lambda result: True,
    ) -> Optional[T]:
        """Try providers in order; return the first accepted result or None."""
        for provider in self._providers:
            if not capable(provider):
                continue
            breaker = self._breakers[provider.name]
            try:
                result = await breaker.call(
                    lambda: asyncio.wait_for(call(provider), timeout=self._timeout)
                )
            except CircuitOpenError as exc:
                log.debug("aggregator.circuit_open", op=operation, provider=provider.name,
                          subject=subject, retry_after=round(exc.retry_after, 1))
                continue
            except SymbolNotFound as exc:
                log.info("aggregator.symbol_not_found", op=operation, provider=provider.name,
                         subject=subject, error=exc.message)
                continue
            except asyncio.TimeoutError:
                log.warning("aggregator.provider_timeout", op=operation, provider=provider.name,
                            subject=subject, timeout=self._timeout)
                continue
            except Exception as exc:
                log.warning("aggregator.provider_failed", op=operation, provider=provider.name,
                            subject=subject, error=str(exc), error_type=type(exc).__name__)
                continue

            if not accept(result):
                log.info("aggregator.provider_empty", op=operation, provider=provider.name, subject=subject)
                continue
            log.debug("aggregator.provider_ok", op=operation, provider=provider.name, subject=subject)
            return result
        return None

    # ── Quotes ──

    async def get_quote(self, symbol: str) -> Quote:
        """Normalized quote; synthetic (flagged) when every provider fails."""
        sym = normalize_symbol(symbol)
        if not sym:
            raise ValueError("Symbol cannot be empty")

        quote = await self._first_success(
            "quote", sym,
            lambda p: p.get_quote(sym),
            accept=lambda q: q.price is not None,
        )
        if quote is not None:
            return quote

        log.warning("aggregator.synthetic_quote", symbol=sym)
        return synthetic.synthetic_quote(sym, self._today())

    async def get_quotes(self, symbols: Iterable[str]) -> list[Quote]:
        """Quotes in input order; each symbol falls back independently."""
        return list(await asyncio.gather(*(self.get_quote(s) for s in symbols)))

    async def get_market_summary(self) -> list[Quote]:
        quotes = await self.get_quotes(MAJOR_SYMBOLS)
        return [q.model_copy(update={"long_name": display_name(q.symbol)}) for q in quotes]

    # ── Search ──

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        q = (query or "").strip()
        if not q:
            return []

        matches = await self._first_success(
            "search", q,
            lambda p: p.search_symbols(q),
            capable=lambda p: p.supports_search,
            accept=bool,
        )
        if matches is None:
            log.warning("aggregator.synthetic_search", query=q)
            return synthetic.synthetic_search(q, self._search_limit)
        return matches[: self._search_limit]

    # ── History ──

    async def get_historical_data(
        self,
        symbol: str,
        period: str = "1mo",
        interval: str = "1d",
    ) -> HistoricalSeries:
        """Most recent daily bars, oldest first."""
        sym = normalize_symbol(symbol)
        if not sym:
            raise ValueError("Symbol cannot be empty")
        if interval != "1d":
            log.info("aggregator.interval_unsupported", symbol=sym, interval=interval, using="1d")
        limit = min(_PERIOD_BARS.get(period, self._max_history_bars), self._max_history_bars)

        provider_used: list[str] = []

        async def fetch(p: QuoteProvider):
            bars = await p.get_daily_bars(sym, limit)
            provider_used.append(p.name)
            return bars

        bars = await self._first_success(
            "history", sym, fetch,
            capable=lambda p: p.supports_history,
            accept=bool,
        )
        if bars is None:
            log.warning("aggregator.synthetic_history", symbol=sym)
            bars = synthetic.synthetic_daily_bars(sym, limit, self._today())
            return HistoricalSeries(symbol=sym, bars=bars, source=SYNTHETIC_SOURCE)
        return HistoricalSeries(symbol=sym, bars=bars[-limit:], source=provider_used[-1])

    # ── Options ──

    async def get_options_chain(self, symbol: str) -> OptionsChain:
        sym = normalize_symbol(symbol)
        chain = await self._first_success(
            "options", sym,
            lambda p: p.get_options_chain(sym),
            capable=lambda p: p.supports_options,
        )
        if chain is None:
            log.info("aggregator.options_unavailable", symbol=sym)
            raise CapabilityUnavailable("options", sym)
        return chain
