"""
ThetaFlowz - Pydantic Models

All I/O schemas for the application. Provider adapters and engines return
these, the session layer persists these, API routes serialize these.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────

class Plan(str, Enum):
    """Subscription tiers. EXPIRED is the degraded state of a lapsed FREE trial."""
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"
    EXPIRED = "expired"


class Feature(str, Enum):
    """Gated product areas."""
    LEARN = "learn"
    MARKET = "market"
    TRADES = "trades"
    PREMIUM = "premium"


SYNTHETIC_SOURCE = "synthetic"

# Parsed as a datetime when possible, otherwise kept as the raw string
Timestamp = Annotated[Union[datetime, str], Field(union_mode="left_to_right")]


# ──────────────────────────────────────────────
# Accounts
# ──────────────────────────────────────────────

class User(BaseModel):
    """Persisted user profile.

    ``plan_expiry`` and ``created_at`` accept either datetimes or raw strings
    so a malformed value read back from storage can still be loaded and
    handled by the entitlement engine instead of failing validation.
    """
    id: str
    email: str
    name: Optional[str] = None
    is_admin: bool = False
    plan: Plan = Plan.FREE
    plan_expiry: Optional[Timestamp] = None
    created_at: Timestamp


class TrialStatus(BaseModel):
    """Screener trial clock, measured from account creation."""
    expired: bool
    days_left: int = Field(..., ge=0)


class EntitlementSummary(BaseModel):
    """Everything a view needs to decide what to render for a user."""
    plan: Plan
    effective_plan: Plan
    is_admin: bool
    features: dict[str, bool]
    plan_expired: bool
    remaining_days: Optional[int] = None
    trial: TrialStatus
    screener: bool


# ──────────────────────────────────────────────
# Market Data Models
# ──────────────────────────────────────────────

class Quote(BaseModel):
    """Normalized quote. Never mutated; the next fetch supersedes it."""
    model_config = ConfigDict(frozen=True)

    symbol: str
    price: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    volume: Optional[int] = None
    high: Optional[float] = None
    low: Optional[float] = None
    open: Optional[float] = None
    previous_close: Optional[float] = None
    timestamp: Optional[float] = None  # epoch seconds
    currency: str = "USD"
    exchange: str = "US"
    short_name: Optional[str] = None
    long_name: Optional[str] = None
    source: str

    @property
    def is_synthetic(self) -> bool:
        return self.source == SYNTHETIC_SOURCE


class SymbolMatch(BaseModel):
    """Single symbol search hit."""
    symbol: str
    name: str
    exchange: str = "US"
    type: str = "EQUITY"


class HistoricalBar(BaseModel):
    """Single daily OHLCV bar."""
    date: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int


class HistoricalSeries(BaseModel):
    symbol: str
    bars: list[HistoricalBar] = []
    source: str

    @property
    def is_synthetic(self) -> bool:
        return self.source == SYNTHETIC_SOURCE


class OptionContract(BaseModel):
    """Single option contract."""
    contract_symbol: str
    strike: float
    option_type: str  # "call" or "put"
    last_price: Optional[float] = None
    bid: Optional[float] = None
    ask: Optional[float] = None
    volume: Optional[int] = None
    open_interest: Optional[int] = None
    implied_volatility: Optional[float] = None


class StrikeContracts(BaseModel):
    calls: list[OptionContract] = []
    puts: list[OptionContract] = []


class OptionsChain(BaseModel):
    """Options chain keyed expiration (YYYY-MM-DD) -> strike -> calls/puts."""
    symbol: str
    underlying_price: Optional[float] = None
    expirations: dict[str, dict[float, StrikeContracts]] = {}
    source: str


# ──────────────────────────────────────────────
# Watchlist
# ──────────────────────────────────────────────

class WatchlistEntry(BaseModel):
    symbol: str
    name: str
    price: Optional[float] = None
    change: Optional[float] = None
    change_percent: Optional[float] = None
    added_at: datetime
    source: Optional[str] = None


# ──────────────────────────────────────────────
# Screener
# ──────────────────────────────────────────────

class ScreenerCriteria(BaseModel):
    """Inclusive filter bounds plus the requested ordering."""
    min_price: float = 0.0
    max_price: float = 1_000_000.0
    min_volume: float = 0.0
    min_market_cap: float = 0.0
    max_bid_ask_spread: float = 1.0
    min_implied_volatility: float = 0.0
    max_implied_volatility: float = 1.0
    min_days_to_expiry: int = 0
    max_days_to_expiry: int = 365
    sort_by: str = "volume"
    descending: bool = True


class CriteriaOverrides(BaseModel):
    """User edits applied on top of a strategy profile's defaults."""
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_volume: Optional[float] = None
    min_market_cap: Optional[float] = None
    max_bid_ask_spread: Optional[float] = None
    min_implied_volatility: Optional[float] = None
    max_implied_volatility: Optional[float] = None
    min_days_to_expiry: Optional[int] = None
    max_days_to_expiry: Optional[int] = None
    sort_by: Optional[str] = None
    descending: Optional[bool] = None


class StrategyProfile(BaseModel):
    """Named preset of screener bounds."""
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    description: str
    criteria: ScreenerCriteria


class UniverseMember(BaseModel):
    """Static reference row for a screener universe symbol."""
    symbol: str
    name: str
    sector: str = "Unknown"
    market_cap: float = 0.0


class ScreenerCandidate(Quote):
    """Quote enriched with reference data and derived option metrics."""
    name: str
    sector: str = "Unknown"
    market_cap: float = 0.0
    bid_ask_spread: float
    implied_volatility: float
    days_to_expiry: int
    score: float = Field(..., ge=0, le=100)


class ScreenerResult(BaseModel):
    run_id: int
    view: str
    strategy: str
    criteria: ScreenerCriteria
    candidates: list[ScreenerCandidate] = []
    synthetic: bool = False
    superseded: bool = False
    batches_total: int = 0
    batches_failed: int = 0

    @property
    def count(self) -> int:
        return len(self.candidates)


# ──────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────

class HealthCheck(BaseModel):
    status: str
    version: str
    providers: dict[str, str] = {}
    uptime_seconds: float
