"""
ThetaFlowz - Exception Taxonomy

Transient provider failures are absorbed by the aggregator. Only capability
absence and validation failures propagate to callers; entitlement denial is
a boolean in the engine and becomes an exception only at the HTTP boundary.
"""

from __future__ import annotations


class ThetaFlowzError(Exception):
    """Base class for all application errors."""


class ProviderError(ThetaFlowzError):
    """A market-data provider could not produce a usable response."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class SymbolNotFound(ProviderError):
    """The provider answered normally but has no data for this symbol or query.

    Not a provider outage: circuit breakers do not count it as a failure.
    """


class UnsupportedOperation(ProviderError):
    """The provider does not offer this kind of data at all."""


class CapabilityUnavailable(ThetaFlowzError):
    """No configured provider can serve the requested capability."""

    def __init__(self, capability: str, symbol: str | None = None):
        self.capability = capability
        self.symbol = symbol
        detail = f"{capability} data is not available from any configured provider"
        if symbol:
            detail += f" for {symbol}"
        super().__init__(detail)


class WatchlistValidationError(ThetaFlowzError):
    """A watchlist mutation was rejected; the watchlist is unchanged."""

    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        self.message = message
        super().__init__(message)


class UnknownStrategyError(ThetaFlowzError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Unknown screener strategy '{key}'")


class EntitlementDenied(ThetaFlowzError):
    """Raised by the HTTP dependency layer when a view is not reachable."""

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f"Your plan does not include access to '{feature}'")
