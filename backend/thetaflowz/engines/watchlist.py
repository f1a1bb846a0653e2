"""
ThetaFlowz - Watchlist Service

Ordered, symbol-unique list of tracked tickers with their last known price.
Every mutation rewrites the full persisted list. Mutations are serialized
on one lock held from load to save, so overlapping requests never write
back a stale copy.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from thetaflowz.data.universe import display_name
from thetaflowz.engines.market_data import MarketDataAggregator
from thetaflowz.errors import WatchlistValidationError
from thetaflowz.models import Quote, WatchlistEntry
from thetaflowz.storage import WatchlistStore
from thetaflowz.utils.validators import normalize_symbol, validate_ticker

log = structlog.get_logger(__name__)


def _entry_name(quote: Quote) -> str:
    name = quote.long_name or quote.short_name
    if not name or name == quote.symbol:
        return display_name(quote.symbol)
    return name


class WatchlistService:
    def __init__(
        self,
        store: WatchlistStore,
        aggregator: MarketDataAggregator,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._aggregator = aggregator
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = asyncio.Lock()

    def load(self) -> list[WatchlistEntry]:
        return self._store.load()

    async def add(self, symbol: str) -> WatchlistEntry:
        """Add a ticker once; adding a present symbol returns the existing entry.

        Raises WatchlistValidationError for a malformed ticker or a quote
        with no usable price. The stored list is untouched in both cases.
        """
        try:
            sym = validate_ticker(symbol)
        except ValueError as exc:
            raise WatchlistValidationError(normalize_symbol(symbol), str(exc)) from exc

        async with self._lock:
            entries = self._store.load()
            for entry in entries:
                if entry.symbol == sym:
                    log.debug("watchlist.duplicate", symbol=sym)
                    return entry

            quote = await self._aggregator.get_quote(sym)
            if quote.price is None:
                raise WatchlistValidationError(sym, f"No price available for {sym}")

            entry = WatchlistEntry(
                symbol=sym,
                name=_entry_name(quote),
                price=quote.price,
                change=quote.change,
                change_percent=quote.change_percent,
                added_at=self._clock(),
                source=quote.source,
            )
            entries.append(entry)
            self._store.save(entries)
        log.info("watchlist.added", symbol=sym, source=quote.source, size=len(entries))
        return entry

    async def remove(self, symbol: str) -> bool:
        sym = normalize_symbol(symbol)
        async with self._lock:
            entries = self._store.load()
            kept = [e for e in entries if e.symbol != sym]
            self._store.save(kept)
        removed = len(kept) < len(entries)
        log.info("watchlist.removed", symbol=sym, removed=removed, size=len(kept))
        return removed

    async def refresh(self) -> list[WatchlistEntry]:
        """Re-quote every entry, keeping order and added_at."""
        async with self._lock:
            entries = self._store.load()
            if not entries:
                return []

            quotes = await self._aggregator.get_quotes([e.symbol for e in entries])
            refreshed = []
            for entry, quote in zip(entries, quotes):
                if quote.price is None:
                    refreshed.append(entry)
                    continue
                refreshed.append(
                    entry.model_copy(update={
                        "price": quote.price,
                        "change": quote.change,
                        "change_percent": quote.change_percent,
                        "source": quote.source,
                    })
                )
            self._store.save(refreshed)
        synthetic = sum(1 for q in quotes if q.is_synthetic)
        log.info("watchlist.refreshed", size=len(refreshed), synthetic=synthetic)
        return refreshed
