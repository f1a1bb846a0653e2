"""
ThetaFlowz - Synthetic Market Data

Deterministic stand-ins used when every live provider has failed. Values are
a pure function of (symbol, UTC day), so repeated calls while offline never
flicker and tests are reproducible. Everything produced here carries
source="synthetic" so views can warn that the data is not live.
"""

from __future__ import annotations

import hashlib
import math
from datetime import date, datetime, time as dt_time, timedelta, timezone

from thetaflowz.models import (
    SYNTHETIC_SOURCE,
    HistoricalBar,
    Quote,
    ScreenerCriteria,
    SymbolMatch,
)

# price, change, change percent
KNOWN_QUOTES: dict[str, tuple[float, float, float]] = {
    "AAPL": (199.30, -4.26, -2.09),
    "MSFT": (533.50, 20.26, 3.95),
    "GOOGL": (190.73, -0.62, -0.32),
    "AMZN": (176.96, 4.94, 2.87),
    "TSLA": (151.03, 0.24, 0.16),
    "SPY": (485.20, 2.15, 0.44),
    "SPXL": (12.45, 0.18, 1.47),
    "SPXS": (8.92, -0.12, -1.33),
}

DEFAULT_QUOTE: tuple[float, float, float] = (150.00, 0.50, 0.33)
DEFAULT_VOLUME = 2_500_000

SEARCH_DEFAULTS: tuple[SymbolMatch, ...] = (
    SymbolMatch(symbol="SPY", name="SPDR S&P 500 ETF Trust", exchange="US", type="ETF"),
    SymbolMatch(symbol="SPXL", name="Direxion Daily S&P 500 Bull 3X Shares", exchange="US", type="ETF"),
    SymbolMatch(symbol="SPXS", name="Direxion Daily S&P 500 Bear 3X Shares", exchange="US", type="ETF"),
    SymbolMatch(symbol="AAPL", name="Apple Inc.", exchange="US", type="EQUITY"),
    SymbolMatch(symbol="MSFT", name="Microsoft Corporation", exchange="US", type="EQUITY"),
)


def unit(*parts) -> float:
    """Stable pseudo-random number in [0, 1) derived from the given parts."""
    raw = ":".join(str(p) for p in parts).encode()
    digest = hashlib.md5(raw).hexdigest()
    return int(digest[:12], 16) / float(1 << 48)


def _today() -> date:
    return datetime.now(timezone.utc).date()


def synthetic_quote(symbol: str, day: date | None = None) -> Quote:
    """Plausible quote for a symbol, stable for a whole UTC day."""
    sym = symbol.upper()
    day = day or _today()
    base_price, base_change, base_pct = KNOWN_QUOTES.get(sym, DEFAULT_QUOTE)

    # Small per-day drift so offline data is not frozen forever
    drift = (unit(sym, day.isoformat(), "drift") - 0.5) * 0.02
    price = round(base_price * (1 + drift), 2)
    change = round(base_change + base_price * drift, 2)
    previous_close = round(price - change, 2)
    change_pct = round(change / previous_close * 100, 2) if previous_close else base_pct
    volume = int(DEFAULT_VOLUME * (0.6 + unit(sym, day.isoformat(), "volume")))

    stamp = datetime.combine(day, dt_time(20, 0), tzinfo=timezone.utc).timestamp()
    return Quote(
        symbol=sym,
        price=price,
        change=change,
        change_percent=change_pct,
        volume=volume,
        high=round(price + 2, 2),
        low=round(price - 2, 2),
        open=round(price - 0.5, 2),
        previous_close=previous_close,
        timestamp=stamp,
        short_name=sym,
        long_name=sym,
        source=SYNTHETIC_SOURCE,
    )


def synthetic_search(query: str, limit: int = 5) -> list[SymbolMatch]:
    """Default matches; narrowed to those mentioning the query when any do."""
    q = query.strip().lower()
    narrowed = [m for m in SEARCH_DEFAULTS if q in m.symbol.lower() or q in m.name.lower()]
    return list(narrowed or SEARCH_DEFAULTS)[:limit]


def _previous_weekdays(end: date, count: int) -> list[date]:
    days: list[date] = []
    cursor = end
    while len(days) < count:
        cursor -= timedelta(days=1)
        if cursor.weekday() < 5:
            days.append(cursor)
    days.reverse()
    return days


def synthetic_daily_bars(symbol: str, count: int = 30, end: date | None = None) -> list[HistoricalBar]:
    """Smooth sine-wave series ending the weekday before ``end``, oldest first."""
    end = end or _today()
    anchor = synthetic_quote(symbol, end).price or DEFAULT_QUOTE[0]
    amplitude = anchor * 0.033
    phase = unit(symbol.upper(), "phase") * math.pi

    bars = []
    days = _previous_weekdays(end, count)
    for offset, day in enumerate(days):
        i = count - offset
        close = round(anchor + math.sin(i * 0.2 + phase) * amplitude, 2)
        bars.append(
            HistoricalBar(
                date=datetime.combine(day, dt_time(0, 0), tzinfo=timezone.utc),
                open=round(close - anchor * 0.0067, 2),
                high=round(close + anchor * 0.0133, 2),
                low=round(close - anchor * 0.0133, 2),
                close=close,
                volume=DEFAULT_VOLUME,
            )
        )
    return bars


# ──────────────────────────────────────────────
# Screener rows
# ──────────────────────────────────────────────


def _between(low: float, high: float, fraction: float) -> float:
    if high < low:
        low, high = high, low
    return low + (high - low) * fraction


def synthetic_screener_quote(symbol: str, criteria: ScreenerCriteria, day: date | None = None) -> Quote:
    """Row placed inside the active price and volume bounds."""
    sym = symbol.upper()
    key = (day or _today()).isoformat()

    price = round(_between(criteria.min_price, criteria.max_price, unit(sym, key, "price")), 2)
    volume = int(criteria.min_volume + unit(sym, key, "volume") * 10_000_000)
    change_pct = round((unit(sym, key, "change") - 0.5) * 20, 2)
    previous_close = round(price / (1 + change_pct / 100), 2)
    change = round(price - previous_close, 2)

    return Quote(
        symbol=sym,
        price=price,
        change=change,
        change_percent=change_pct,
        volume=volume,
        high=round(price * 1.02, 2),
        low=round(price * 0.98, 2),
        open=previous_close,
        previous_close=previous_close,
        timestamp=datetime.combine(day or _today(), dt_time(20, 0), tzinfo=timezone.utc).timestamp(),
        short_name=sym,
        long_name=sym,
        source=SYNTHETIC_SOURCE,
    )


def synthetic_market_cap(symbol: str, reference_cap: float, min_market_cap: float) -> float:
    """Reference cap when it clears the floor, else a stable value above it."""
    if reference_cap >= min_market_cap:
        return reference_cap
    return min_market_cap + unit(symbol.upper(), "cap") * 10_000_000_000
