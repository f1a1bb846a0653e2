"""
ThetaFlowz - Input Validators

Ticker helpers shared by the watchlist and the HTTP routes. Raise ValueError
on invalid input so callers can map to 400 responses.
"""

from __future__ import annotations

import re

# Matches standard US ticker symbols: 1-5 uppercase letters, optional .class
_TICKER_RE = re.compile(r"^[A-Z]{1,5}(\.[A-Z]{1,2})?$")


def normalize_symbol(raw: str) -> str:
    """Canonical form used as the identity of a symbol everywhere."""
    return (raw or "").strip().upper()


def validate_ticker(raw: str) -> str:
    """Clean and validate a stock ticker symbol.

    Returns the normalized ticker or raises ValueError.

    >>> validate_ticker('aapl')
    'AAPL'
    >>> validate_ticker('BRK.B')
    'BRK.B'
    """
    ticker = normalize_symbol(raw)
    if not ticker:
        raise ValueError("Ticker cannot be empty")
    if not _TICKER_RE.match(ticker):
        raise ValueError(
            f"Invalid ticker '{ticker}'. Expected 1-5 uppercase letters, "
            f"optionally followed by a class suffix (e.g. BRK.B)"
        )
    return ticker


def parse_symbol_list(raw: str, max_symbols: int = 50) -> list[str]:
    """Split a comma-separated symbol list, keeping order and dropping blanks.

    >>> parse_symbol_list('aapl, msft,,tsla')
    ['AAPL', 'MSFT', 'TSLA']
    """
    symbols = [normalize_symbol(s) for s in (raw or "").split(",")]
    symbols = [s for s in symbols if s]
    if len(symbols) > max_symbols:
        raise ValueError(f"At most {max_symbols} symbols per request, got {len(symbols)}")
    return symbols
