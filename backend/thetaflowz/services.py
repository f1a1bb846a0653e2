"""
ThetaFlowz - Service Container

Every component is built once here and handed to the app through
``app.state.services``. Tests build their own container with in-memory
storage, fake providers and a fixed clock.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

from thetaflowz.auth.entitlements import Clock, EntitlementEngine
from thetaflowz.auth.session import SessionManager
from thetaflowz.config import Settings, get_settings
from thetaflowz.data import build_default_providers
from thetaflowz.data.base import QuoteProvider
from thetaflowz.engines.market_data import MarketDataAggregator
from thetaflowz.engines.screener_engine import ScreenerEngine
from thetaflowz.engines.watchlist import WatchlistService
from thetaflowz.storage import JsonFileStorage, KeyValueStorage, UserStore, WatchlistStore


@dataclass
class Services:
    settings: Settings
    entitlements: EntitlementEngine
    sessions: SessionManager
    aggregator: MarketDataAggregator
    watchlist: WatchlistService
    screener: ScreenerEngine
    started_at: float = field(default_factory=time.monotonic)

    @property
    def uptime_seconds(self) -> float:
        return round(time.monotonic() - self.started_at, 1)


def build_services(
    settings: Optional[Settings] = None,
    storage: Optional[KeyValueStorage] = None,
    providers: Optional[Sequence[QuoteProvider]] = None,
    clock: Optional[Clock] = None,
) -> Services:
    """Wire the default component graph; any piece can be substituted."""
    settings = settings or get_settings()
    storage = storage if storage is not None else JsonFileStorage(settings.storage_path)
    providers = list(providers) if providers is not None else build_default_providers(settings)
    today = (lambda: clock().date()) if clock is not None else None

    entitlements = EntitlementEngine(clock=clock, trial_days=settings.trial_days)
    aggregator = MarketDataAggregator(
        providers,
        timeout=settings.provider_timeout_seconds,
        failure_threshold=settings.circuit_failure_threshold,
        recovery_timeout=settings.circuit_recovery_seconds,
        search_limit=settings.search_result_limit,
        max_history_bars=settings.history_max_bars,
        today=today,
    )
    return Services(
        settings=settings,
        entitlements=entitlements,
        sessions=SessionManager(UserStore(storage), entitlements, settings.admin_email_list),
        aggregator=aggregator,
        watchlist=WatchlistService(WatchlistStore(storage), aggregator, clock=clock),
        screener=ScreenerEngine(aggregator, batch_size=settings.screener_batch_size, today=today),
    )
