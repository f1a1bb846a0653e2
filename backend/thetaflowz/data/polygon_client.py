"""
ThetaFlowz - Polygon.io Data Client

Third provider: a different vendor with coarse daily aggregates only
(free tier: 5 calls/min, previous-day bars). The "quote" is the previous
session's aggregate bar, so price is its close and the change is measured
against its open. The bar carries no previous close, so that field stays
empty.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from thetaflowz.data.base import QuoteProvider, pct_change, safe_float, safe_int
from thetaflowz.errors import ProviderError, SymbolNotFound
from thetaflowz.models import HistoricalBar, Quote

_FAILED_STATUSES = frozenset({"ERROR", "NOT_AUTHORIZED"})


class PolygonClient(QuoteProvider):
    """Wrapper around the Polygon.io aggregates API."""

    name = "polygon"
    supports_history = True

    async def _aggs(self, path: str, **params) -> list[dict]:
        self._require_configured()
        data = await self._get_json(path, params={"adjusted": "true", "apiKey": self._api_key, **params})
        if not isinstance(data, dict):
            raise ProviderError(self.name, "unexpected response shape")
        status = str(data.get("status", "")).upper()
        if status in _FAILED_STATUSES:
            raise ProviderError(self.name, data.get("error") or data.get("message") or status)
        results = data.get("results")
        if status == "NOT_FOUND" or not results:
            raise SymbolNotFound(self.name, f"empty results for {path}")
        return results

    async def get_quote(self, symbol: str) -> Quote:
        sym = symbol.upper()
        results = await self._aggs(f"/v2/aggs/ticker/{sym}/prev")
        bar = results[0]

        price = safe_float(bar.get("c"))
        if price is None:
            raise SymbolNotFound(self.name, f"no close for {sym}")
        session_open = safe_float(bar.get("o"))
        change, change_pct = pct_change(price, session_open)
        ts_ms = safe_float(bar.get("t"))

        return Quote(
            symbol=sym,
            price=price,
            change=change,
            change_percent=change_pct,
            volume=safe_int(bar.get("v")) or 0,
            high=safe_float(bar.get("h")) or price,
            low=safe_float(bar.get("l")) or price,
            open=session_open or price,
            previous_close=None,
            timestamp=ts_ms / 1000 if ts_ms else None,
            short_name=sym,
            long_name=sym,
            source=self.name,
        )

    async def get_daily_bars(self, symbol: str, limit: int = 30) -> list[HistoricalBar]:
        sym = symbol.upper()
        today = date.today()
        # Calendar window wide enough to contain `limit` trading sessions
        start = today - timedelta(days=limit * 2 + 10)
        results = await self._aggs(
            f"/v2/aggs/ticker/{sym}/range/1/day/{start.isoformat()}/{today.isoformat()}",
            sort="asc",
            limit=5000,
        )

        bars = []
        for row in results:
            ts_ms = safe_float(row.get("t"))
            values = [safe_float(row.get(k)) for k in ("o", "h", "l", "c")]
            if ts_ms is None or any(v is None for v in values):
                continue
            o, h, l, c = values
            bars.append(
                HistoricalBar(
                    date=datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc),
                    open=o, high=h, low=l, close=c,
                    volume=safe_int(row.get("v")) or 0,
                )
            )
        if not bars:
            raise SymbolNotFound(self.name, f"no usable bars for {sym}")
        return bars[-limit:]
