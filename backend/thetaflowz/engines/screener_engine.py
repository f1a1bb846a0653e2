"""
ThetaFlowz - Stock Screener Engine

Strategy-driven screener over a fixed large-cap universe:
  1. Resolve a strategy profile's bounds plus user overrides
  2. Fetch quotes in sequential batches through the aggregator
  3. Derive option proxies (spread, implied volatility, days to expiry)
  4. Filter on every bound, score 0-100, sort

Batches are issued one after another so provider rate limits are consumed
in order; quotes inside a batch are fetched concurrently. When no live data
comes back at all, the whole universe is rebuilt from deterministic
synthetic rows so the result set is never empty.
"""

from __future__ import annotations

import itertools
import math
from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional, Sequence

import structlog

from thetaflowz.data import synthetic
from thetaflowz.data.universe import DEFAULT_UNIVERSE, lookup
from thetaflowz.engines.market_data import MarketDataAggregator
from thetaflowz.errors import UnknownStrategyError
from thetaflowz.models import (
    CriteriaOverrides,
    Quote,
    ScreenerCandidate,
    ScreenerCriteria,
    ScreenerResult,
    StrategyProfile,
    UniverseMember,
)

log = structlog.get_logger(__name__)

_B = 1_000_000_000
_M = 1_000_000


# ──────────────────────────────────────────────
# Strategy profiles
# ──────────────────────────────────────────────

STRATEGY_PROFILES: dict[str, StrategyProfile] = {
    p.key: p
    for p in (
        StrategyProfile(
            key="wheeling",
            name="The Wheel",
            description="Sell cash-secured puts, take assignment, then sell covered calls.",
            criteria=ScreenerCriteria(
                min_price=20, max_price=200, min_volume=2 * _M, min_market_cap=10 * _B,
                max_bid_ask_spread=0.05,
                min_implied_volatility=0.25, max_implied_volatility=0.60,
                min_days_to_expiry=45, max_days_to_expiry=90,
            ),
        ),
        StrategyProfile(
            key="iron_condor",
            name="Iron Condor",
            description="Range-bound premium collection on liquid, stable underlyings.",
            criteria=ScreenerCriteria(
                min_price=50, max_price=500, min_volume=5 * _M, min_market_cap=50 * _B,
                max_bid_ask_spread=0.03,
                min_implied_volatility=0.20, max_implied_volatility=0.45,
                min_days_to_expiry=30, max_days_to_expiry=60,
            ),
        ),
        StrategyProfile(
            key="credit_spreads",
            name="Credit Spreads",
            description="Defined-risk directional premium selling.",
            criteria=ScreenerCriteria(
                min_price=25, max_price=400, min_volume=3 * _M, min_market_cap=20 * _B,
                max_bid_ask_spread=0.04,
                min_implied_volatility=0.30, max_implied_volatility=0.70,
                min_days_to_expiry=14, max_days_to_expiry=45,
            ),
        ),
        StrategyProfile(
            key="covered_calls",
            name="Covered Calls",
            description="Income on shares already held.",
            criteria=ScreenerCriteria(
                min_price=10, max_price=150, min_volume=1 * _M, min_market_cap=5 * _B,
                max_bid_ask_spread=0.06,
                min_implied_volatility=0.20, max_implied_volatility=0.50,
                min_days_to_expiry=21, max_days_to_expiry=60,
            ),
        ),
        StrategyProfile(
            key="naked_puts",
            name="Naked Puts",
            description="Uncovered put selling on names you would own.",
            criteria=ScreenerCriteria(
                min_price=15, max_price=250, min_volume=2_500_000, min_market_cap=15 * _B,
                max_bid_ask_spread=0.05,
                min_implied_volatility=0.35, max_implied_volatility=0.80,
                min_days_to_expiry=30, max_days_to_expiry=60,
            ),
        ),
    )
}

DEFAULT_STRATEGY = "wheeling"

SORTABLE_FIELDS = frozenset({
    "price", "change", "change_percent", "volume", "market_cap",
    "bid_ask_spread", "implied_volatility", "days_to_expiry", "score",
})

DTE_CHOICES: tuple[int, ...] = (7, 14, 21, 30, 45, 60, 90, 120, 180, 365)


def get_profile(key: str) -> StrategyProfile:
    profile = STRATEGY_PROFILES.get(key)
    if profile is None:
        raise UnknownStrategyError(key)
    return profile


def resolve_criteria(strategy_key: str, overrides: Optional[CriteriaOverrides] = None) -> ScreenerCriteria:
    """Profile defaults with any explicitly set override applied per field."""
    criteria = get_profile(strategy_key).criteria
    if overrides is None:
        return criteria.model_copy()
    return criteria.model_copy(update=overrides.model_dump(exclude_none=True))


# ──────────────────────────────────────────────
# Derived option metrics
# ──────────────────────────────────────────────

def bid_ask_spread(price: float) -> float:
    """Fractional spread; wider for cheaper shares, capped at 10%."""
    if price <= 0:
        return 0.10
    return min(0.10, 0.01 + max(0.005, 1 / price))


def implied_volatility(volume: float, change_pct: float) -> float:
    volume_factor = min(1.0, (volume or 0) / 10_000_000)
    move_factor = abs(change_pct or 0) / 100
    return min(1.0, max(0.10, 0.3 + move_factor * 0.4 + volume_factor * 0.2))


def days_to_expiry(symbol: str, price: float, volume: float) -> int:
    """Stable pick from the listed expiries for this symbol and quote."""
    u = synthetic.unit(symbol.upper(), round(price or 0), round((volume or 0) / 100_000))
    return DTE_CHOICES[int(u * len(DTE_CHOICES))]


def score_candidate(volume: float, change_pct: float, spread: float, iv: float, criteria: ScreenerCriteria) -> float:
    """0-100 composite: liquidity, stability, tight spread, IV near the band middle."""
    score = 50.0
    if criteria.min_volume > 0:
        score += min(20.0, volume / criteria.min_volume * 10)
    else:
        score += 20.0
    score += max(0.0, 15 - abs(change_pct) * 0.5)
    score += max(0.0, 15 - spread * 200)
    iv_mid = (criteria.min_implied_volatility + criteria.max_implied_volatility) / 2
    score += max(0.0, 20 - abs(iv - iv_mid) * 40)
    return round(min(100.0, max(0.0, score)), 2)


def matches(candidate: ScreenerCandidate, criteria: ScreenerCriteria) -> bool:
    """Every inclusive bound holds."""
    price = candidate.price if candidate.price is not None else -math.inf
    volume = candidate.volume if candidate.volume is not None else -math.inf
    return (
        criteria.min_price <= price <= criteria.max_price
        and volume >= criteria.min_volume
        and candidate.market_cap >= criteria.min_market_cap
        and candidate.bid_ask_spread <= criteria.max_bid_ask_spread
        and criteria.min_implied_volatility <= candidate.implied_volatility <= criteria.max_implied_volatility
        and criteria.min_days_to_expiry <= candidate.days_to_expiry <= criteria.max_days_to_expiry
    )


def build_candidate(
    quote: Quote,
    member: UniverseMember,
    criteria: ScreenerCriteria,
    market_cap: Optional[float] = None,
) -> ScreenerCandidate:
    price = quote.price or 0.0
    volume = quote.volume or 0
    change_pct = quote.change_percent or 0.0

    spread = round(bid_ask_spread(price), 4)
    iv = round(implied_volatility(volume, change_pct), 4)
    return ScreenerCandidate(
        **quote.model_dump(),
        name=member.name,
        sector=member.sector,
        market_cap=member.market_cap if market_cap is None else market_cap,
        bid_ask_spread=spread,
        implied_volatility=iv,
        days_to_expiry=days_to_expiry(quote.symbol, price, volume),
        score=score_candidate(volume, change_pct, spread, iv, criteria),
    )


def _clamp_into_bounds(candidate: ScreenerCandidate, criteria: ScreenerCriteria) -> ScreenerCandidate:
    spread = min(candidate.bid_ask_spread, criteria.max_bid_ask_spread)
    iv = min(max(candidate.implied_volatility, criteria.min_implied_volatility), criteria.max_implied_volatility)
    in_range = [d for d in DTE_CHOICES if criteria.min_days_to_expiry <= d <= criteria.max_days_to_expiry]
    if in_range:
        dte = in_range[int(synthetic.unit(candidate.symbol, "dte") * len(in_range))]
    else:
        dte = min(max(candidate.days_to_expiry, criteria.min_days_to_expiry), criteria.max_days_to_expiry)
    return candidate.model_copy(update={
        "bid_ask_spread": spread,
        "implied_volatility": iv,
        "days_to_expiry": dte,
        "score": score_candidate(candidate.volume or 0, candidate.change_percent or 0, spread, iv, criteria),
    })


def sort_candidates(candidates: list[ScreenerCandidate], criteria: ScreenerCriteria) -> list[ScreenerCandidate]:
    key = criteria.sort_by if criteria.sort_by in SORTABLE_FIELDS else "volume"

    def sort_key(c: ScreenerCandidate):
        value = getattr(c, key)
        return (value is not None, value if value is not None else 0, c.symbol)

    return sorted(candidates, key=sort_key, reverse=criteria.descending)


# ──────────────────────────────────────────────
# Engine
# ──────────────────────────────────────────────

def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class ScreenerEngine:
    """Runs screens; a newer run for the same view supersedes older ones."""

    def __init__(
        self,
        aggregator: MarketDataAggregator,
        batch_size: int = 10,
        universe: Sequence[UniverseMember] = DEFAULT_UNIVERSE,
        today: Callable[[], date] | None = None,
    ):
        self._aggregator = aggregator
        self._batch_size = max(1, batch_size)
        self._universe = tuple(universe)
        self._today = today or _utc_today
        self._run_ids = itertools.count(1)
        self._latest: dict[str, int] = {}

    @staticmethod
    def strategies() -> list[StrategyProfile]:
        return list(STRATEGY_PROFILES.values())

    def is_current(self, view: str, run_id: int) -> bool:
        return self._latest.get(view) == run_id

    @property
    def active_views(self) -> set[str]:
        """Views with a run still in flight; a view is forgotten once its latest run ends."""
        return set(self._latest)

    def _members(self, symbols: Optional[Iterable[str]]) -> list[UniverseMember]:
        if symbols is None:
            return list(self._universe)
        seen: dict[str, UniverseMember] = {}
        for s in symbols:
            sym = s.strip().upper()
            if sym and sym not in seen:
                seen[sym] = lookup(sym)
        return list(seen.values())

    async def run(
        self,
        view: str = "default",
        strategy: str = DEFAULT_STRATEGY,
        overrides: Optional[CriteriaOverrides] = None,
        symbols: Optional[Iterable[str]] = None,
    ) -> ScreenerResult:
        criteria = resolve_criteria(strategy, overrides)
        members = self._members(symbols)
        run_id = next(self._run_ids)
        self._latest[view] = run_id

        try:
            return await self._execute(view, run_id, strategy, criteria, members)
        finally:
            if self.is_current(view, run_id):
                del self._latest[view]

    async def _execute(
        self,
        view: str,
        run_id: int,
        strategy: str,
        criteria: ScreenerCriteria,
        members: list[UniverseMember],
    ) -> ScreenerResult:
        batches = [members[i:i + self._batch_size] for i in range(0, len(members), self._batch_size)]
        result = ScreenerResult(
            run_id=run_id, view=view, strategy=strategy, criteria=criteria,
            batches_total=len(batches),
        )
        log.info("screener.run_start", view=view, run_id=run_id, strategy=strategy,
                 symbols=len(members), batches=len(batches))

        fetched: list[tuple[Quote, UniverseMember]] = []
        for index, batch in enumerate(batches, start=1):
            if not self.is_current(view, run_id):
                log.info("screener.superseded", view=view, run_id=run_id, at_batch=index)
                return result.model_copy(update={"superseded": True})
            try:
                quotes = await self._aggregator.get_quotes([m.symbol for m in batch])
            except Exception as exc:
                result.batches_failed += 1
                log.warning("screener.batch_failed", view=view, run_id=run_id, batch=index,
                            error=str(exc), error_type=type(exc).__name__)
                continue
            fetched.extend((q, m) for q, m in zip(quotes, batch) if q.price is not None)

        if not self.is_current(view, run_id):
            log.info("screener.superseded", view=view, run_id=run_id, at_batch=len(batches) + 1)
            return result.model_copy(update={"superseded": True})

        offline = bool(batches) and (
            result.batches_failed == len(batches) or all(q.is_synthetic for q, _ in fetched)
        )
        if offline:
            candidates = self._offline_candidates(members, criteria)
        else:
            built = (build_candidate(q, m, criteria) for q, m in fetched)
            candidates = [c for c in built if matches(c, criteria)]

        result.candidates = sort_candidates(candidates, criteria)
        result.synthetic = offline
        log.info("screener.run_complete", view=view, run_id=run_id, strategy=strategy,
                 matched=result.count, synthetic=offline, batches_failed=result.batches_failed)
        return result

    def _offline_candidates(self, members: list[UniverseMember], criteria: ScreenerCriteria) -> list[ScreenerCandidate]:
        day = self._today()
        rows = [
            build_candidate(
                synthetic.synthetic_screener_quote(m.symbol, criteria, day),
                m,
                criteria,
                market_cap=synthetic.synthetic_market_cap(m.symbol, m.market_cap, criteria.min_market_cap),
            )
            for m in members
        ]
        kept = [c for c in rows if matches(c, criteria)]
        if kept:
            return kept

        log.info("screener.offline_clamped", rows=len(rows))
        clamped = (_clamp_into_bounds(c, criteria) for c in rows)
        return [c for c in clamped if matches(c, criteria)]
