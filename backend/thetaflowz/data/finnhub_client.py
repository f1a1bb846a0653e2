"""
ThetaFlowz - Finnhub Data Client

Second provider: laxer CORS and rate limits (60 calls/min free), fewer
fields. The quote endpoint returns single-letter keys and no change
figures; change is derived from current and previous close here.
An unknown symbol comes back as all zeros rather than an error.
"""

from __future__ import annotations

import time

from thetaflowz.data.base import QuoteProvider, pct_change, safe_float, safe_int
from thetaflowz.errors import ProviderError, SymbolNotFound
from thetaflowz.models import Quote, SymbolMatch


class FinnhubClient(QuoteProvider):
    """Wrapper around Finnhub REST API."""

    name = "finnhub"
    supports_search = True

    @property
    def _headers(self) -> dict[str, str]:
        return {"X-Finnhub-Token": self._api_key}

    async def get_quote(self, symbol: str) -> Quote:
        self._require_configured()
        data = await self._get_json("/quote", params={"symbol": symbol}, headers=self._headers)
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected response shape")
        if data.get("error"):
            raise ProviderError(self.name, str(data["error"]))

        price = safe_float(data.get("c"))
        if not price or price <= 0:
            raise SymbolNotFound(self.name, f"no quote for {symbol}")

        previous = safe_float(data.get("pc"))
        change, change_pct = pct_change(price, previous)
        if change is None:
            change = safe_float(data.get("d"))
            change_pct = safe_float(data.get("dp"))

        sym = symbol.upper()
        return Quote(
            symbol=sym,
            price=price,
            change=change,
            change_percent=change_pct,
            volume=safe_int(data.get("v")) or 0,
            high=safe_float(data.get("h")) or price,
            low=safe_float(data.get("l")) or price,
            open=safe_float(data.get("o")) or price,
            previous_close=previous,
            timestamp=safe_float(data.get("t")) or time.time(),
            short_name=sym,
            long_name=sym,
            source=self.name,
        )

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        self._require_configured()
        data = await self._get_json("/search", params={"q": query}, headers=self._headers)
        results = data.get("result") if isinstance(data, dict) else None
        if not results:
            raise SymbolNotFound(self.name, f"no search results for '{query}'")
        return [
            SymbolMatch(
                symbol=item["symbol"],
                name=item.get("description") or item["symbol"],
                exchange=item.get("primaryExchange") or "US",
                type=item.get("type") or "EQUITY",
            )
            for item in results
            if item.get("symbol")
        ]
