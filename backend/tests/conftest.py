"""
Shared test fixtures: fake quote providers, a fixed clock, and an app
wired to in-memory storage.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from thetaflowz.config import Settings
from thetaflowz.data.base import QuoteProvider
from thetaflowz.errors import ProviderError, SymbolNotFound
from thetaflowz.models import HistoricalBar, Quote, SymbolMatch
from thetaflowz.storage import MemoryStorage

NOW = datetime(2024, 6, 3, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    """Mutable clock; tests move time with ``advance``."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeProvider(QuoteProvider):
    """In-process provider with canned data and call counters.

    ``fail=True`` makes every operation raise ProviderError.
    """

    def __init__(
        self,
        name: str = "fake",
        quotes: dict[str, dict] | None = None,
        matches: list[SymbolMatch] | None = None,
        bars: list[HistoricalBar] | None = None,
        fail: bool = False,
        supports_search: bool = True,
        supports_history: bool = True,
    ):
        super().__init__(api_key="test")
        self.name = name
        self.quotes = quotes or {}
        self.matches = matches or []
        self.bars = bars or []
        self.fail = fail
        self.supports_search = supports_search
        self.supports_history = supports_history
        self.calls: dict[str, int] = {"quote": 0, "search": 0, "history": 0}

    async def get_quote(self, symbol: str) -> Quote:
        self.calls["quote"] += 1
        if self.fail:
            raise ProviderError(self.name, "boom")
        data = self.quotes.get(symbol)
        if data is None:
            raise SymbolNotFound(self.name, f"no quote for {symbol}")
        return Quote(symbol=symbol, source=self.name, **data)

    async def search_symbols(self, query: str) -> list[SymbolMatch]:
        self.calls["search"] += 1
        if self.fail:
            raise ProviderError(self.name, "boom")
        return list(self.matches)

    async def get_daily_bars(self, symbol: str, limit: int = 30) -> list[HistoricalBar]:
        self.calls["history"] += 1
        if self.fail:
            raise ProviderError(self.name, "boom")
        return self.bars[-limit:]


def make_quote(price: float, volume: int = 5_000_000, change_percent: float = 1.0) -> dict:
    return {
        "price": price,
        "change": round(price * change_percent / 100, 2),
        "change_percent": change_percent,
        "volume": volume,
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        admin_emails="admin@thetaflowz.test",
        provider_timeout_seconds=1.0,
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def make_client(settings, storage, clock):
    """Factory building a TestClient around in-memory services."""
    from thetaflowz.main import create_app
    from thetaflowz.services import build_services

    def _make(providers=None):
        services = build_services(
            settings=settings,
            storage=storage,
            providers=providers if providers is not None else [FakeProvider(fail=True)],
            clock=clock,
        )
        return TestClient(create_app(services))

    return _make
