"""
ThetaFlowz - Quote Provider Interface

Every market-data vendor is wrapped by one adapter implementing
``QuoteProvider``. Adapters own all vendor-specific parsing: field names,
percent strings, soft-error envelopes. Anything that goes wrong inside an
adapter surfaces as ``ProviderError`` so the aggregator can fall through to
the next provider without knowing vendor details.
"""

from __future__ import annotations

import math
from typing import Any, Optional

import httpx
import structlog

from thetaflowz.errors import ProviderError, UnsupportedOperation
from thetaflowz.models import HistoricalBar, OptionsChain, Quote, SymbolMatch

log = structlog.get_logger(__name__)


# ──────────────────────────────────────────────
# Normalization helpers
# ──────────────────────────────────────────────


def safe_float(val: Any) -> Optional[float]:
    """Convert a vendor value to float, or None when it is not a number."""
    if val is None or isinstance(val, bool):
        return None
    try:
        f = float(val)
    except (ValueError, TypeError):
        return None
    if math.isnan(f) or math.isinf(f):
        return None
    return f


def safe_int(val: Any) -> Optional[int]:
    f = safe_float(val)
    return int(f) if f is not None else None


def parse_percent(val: Any) -> Optional[float]:
    """Parse vendor percent values into a bare float.

    >>> parse_percent("-2.09%")
    -2.09
    >>> parse_percent(" 1.5 % ")
    1.5
    >>> parse_percent(0.33)
    0.33
    """
    if isinstance(val, str):
        val = val.strip().rstrip("%").strip()
    return safe_float(val)


def pct_change(price: Optional[float], previous: Optional[float]) -> tuple[Optional[float], Optional[float]]:
    """Absolute and percent change from two prices, when both are usable."""
    if price is None or previous is None or previous == 0:
        return None, None
    change = price - previous
    return change, change / previous * 100


# ──────────────────────────────────────────────
# Provider base class
# ──────────────────────────────────────────────


class QuoteProvider:
    """Base adapter: one vendor, one HTTP client configuration.

    Subclasses set ``name`` and the ``supports_*`` flags and override the
    operations they implement. Unimplemented operations raise
    ``UnsupportedOperation``.
    """

    name: str = "provider"
    supports_search: bool = False
    supports_history: bool = False
    supports_options: bool = False

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def _is_configured(self) -> bool:
        return bool(self._api_key)

    def _require_configured(self) -> None:
        if not self._is_configured:
            raise ProviderError(self.name, "API key not configured")

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET a JSON document, mapping transport and HTTP failures to ProviderError."""
        try:
            async with httpx.AsyncClient(
                headers=headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = await client.get(f"{self._base_url}{path}", params=params)
                resp.raise_for_status()
                return resp.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(self.name, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, f"transport error: {exc}") from exc
        except ValueError as exc:
            raise ProviderError(self.name, "response body is not valid JSON") from exc

    # ── Operations ──

    async def get_quote(self, symbol: str) -> Quote:
        raise UnsupportedOperation(self.name, "quotes not supported")

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        raise UnsupportedOperation(self.name, "symbol search not supported")

    async def get_daily_bars(self, symbol: str, limit: int = 30) -> list[HistoricalBar]:
        raise UnsupportedOperation(self.name, "historical data not supported")

    async def get_options_chain(self, symbol: str) -> OptionsChain:
        raise UnsupportedOperation(self.name, "options data not supported")

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} configured={self._is_configured}>"
