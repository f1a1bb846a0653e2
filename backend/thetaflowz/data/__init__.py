"""
ThetaFlowz - Market Data Providers

Provider adapters in fallback order: Alpha Vantage → Finnhub → Polygon.io.
"""

from __future__ import annotations

from thetaflowz.config import Settings, get_settings
from thetaflowz.data.alphavantage_client import AlphaVantageClient
from thetaflowz.data.base import QuoteProvider
from thetaflowz.data.finnhub_client import FinnhubClient
from thetaflowz.data.polygon_client import PolygonClient


def build_default_providers(settings: Settings | None = None) -> list[QuoteProvider]:
    """Adapters in fixed fallback order, configured from settings."""
    settings = settings or get_settings()
    timeout = settings.provider_timeout_seconds
    return [
        AlphaVantageClient(settings.alphavantage_api_key, settings.alphavantage_base_url, timeout),
        FinnhubClient(settings.finnhub_api_key, settings.finnhub_base_url, timeout),
        PolygonClient(settings.polygon_api_key, settings.polygon_base_url, timeout),
    ]


__all__ = [
    "AlphaVantageClient",
    "FinnhubClient",
    "PolygonClient",
    "QuoteProvider",
    "build_default_providers",
]
