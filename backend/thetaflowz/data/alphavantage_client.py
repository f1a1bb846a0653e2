"""
ThetaFlowz - Alpha Vantage Data Client

Primary provider: richest quote payload, strictest rate limit.
Free tier: 25 calls/day. No options data on the free tier.

Alpha Vantage reports errors with HTTP 200 and an envelope key
("Note", "Information" or "Error Message"), so every response is checked
for those before parsing.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone

import structlog

from thetaflowz.data.base import QuoteProvider, parse_percent, safe_float, safe_int
from thetaflowz.errors import ProviderError, SymbolNotFound
from thetaflowz.models import HistoricalBar, Quote, SymbolMatch

log = structlog.get_logger(__name__)

_SOFT_ERROR_KEYS = ("Error Message", "Note", "Information")


class AlphaVantageClient(QuoteProvider):
    """Wrapper around the Alpha Vantage /query endpoint."""

    name = "alphavantage"
    supports_search = True
    supports_history = True

    async def _query(self, function: str, **params) -> dict:
        self._require_configured()
        data = await self._get_json(
            "/query",
            params={"function": function, "apikey": self._api_key, **params},
        )
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected response shape")
        for key in _SOFT_ERROR_KEYS:
            if key in data:
                raise ProviderError(self.name, str(data[key])[:200])
        return data

    async def get_quote(self, symbol: str) -> Quote:
        data = await self._query("GLOBAL_QUOTE", symbol=symbol)
        quote = data.get("Global Quote") or {}
        price = safe_float(quote.get("05. price"))
        if price is None:
            raise SymbolNotFound(self.name, f"no quote for {symbol}")

        sym = (quote.get("01. symbol") or symbol).upper()
        return Quote(
            symbol=sym,
            price=price,
            change=safe_float(quote.get("09. change")),
            change_percent=parse_percent(quote.get("10. change percent")),
            volume=safe_int(quote.get("06. volume")),
            high=safe_float(quote.get("03. high")),
            low=safe_float(quote.get("04. low")),
            open=safe_float(quote.get("02. open")),
            previous_close=safe_float(quote.get("08. previous close")),
            timestamp=time.time(),
            short_name=sym,
            long_name=sym,
            source=self.name,
        )

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        data = await self._query("SYMBOL_SEARCH", keywords=query)
        matches = data.get("bestMatches")
        if not isinstance(matches, list):
            raise ProviderError(self.name, "search response missing bestMatches")
        return [
            SymbolMatch(
                symbol=m.get("1. symbol", ""),
                name=m.get("2. name") or m.get("1. symbol", ""),
                exchange=m.get("4. region") or "US",
                type=m.get("3. type") or "EQUITY",
            )
            for m in matches
            if m.get("1. symbol")
        ]

    async def get_daily_bars(self, symbol: str, limit: int = 30) -> list[HistoricalBar]:
        data = await self._query("TIME_SERIES_DAILY", symbol=symbol)
        series = data.get("Time Series (Daily)")
        if not isinstance(series, dict) or not series:
            raise SymbolNotFound(self.name, f"no daily series for {symbol}")

        bars = []
        for day in sorted(series, reverse=True)[:limit]:
            row = series[day]
            try:
                date = datetime.strptime(day, "%Y-%m-%d").replace(tzinfo=timezone.utc)
            except ValueError:
                log.debug("alphavantage.bad_bar_date", symbol=symbol, date=day)
                continue
            values = [safe_float(row.get(k)) for k in ("1. open", "2. high", "3. low", "4. close")]
            if any(v is None for v in values):
                continue
            o, h, l, c = values
            bars.append(
                HistoricalBar(
                    date=date, open=o, high=h, low=l, close=c,
                    volume=safe_int(row.get("5. volume")) or 0,
                )
            )
        if not bars:
            raise SymbolNotFound(self.name, f"daily series for {symbol} had no usable bars")
        bars.reverse()
        return bars
