"""
ThetaFlowz - Entitlement Engine

Pure access decisions over a User record. The only input besides the user
is the clock, which is injected so tests can move time.

Two trial clocks exist and are deliberately kept apart:
    plan_expiry          → has_access / is_plan_expired / get_remaining_days
    created_at + 7 days  → trial_status / can_use_screener
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from thetaflowz.models import EntitlementSummary, Feature, Plan, TrialStatus, User

log = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

_DAY_SECONDS = 86_400.0
_PAID_PLANS = frozenset({Plan.BASIC, Plan.PREMIUM})


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """Coerce a stored timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (including a trailing ``Z``) and
    epoch seconds. Returns None for anything unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            dt = datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _days_ceil(delta: timedelta) -> int:
    """Whole days remaining, rounded up, never negative."""
    return max(0, math.ceil(delta.total_seconds() / _DAY_SECONDS))


class EntitlementEngine:
    """Answers "can this user reach feature X" and "how long is left"."""

    def __init__(self, clock: Clock | None = None, trial_days: int = 7):
        self._clock = clock or utc_now
        self.trial_days = trial_days

    def now(self) -> datetime:
        return self._clock()

    # ── Access ──

    def has_access(self, user: Optional[User], feature: Feature | str) -> bool:
        if user is None:
            return False
        if user.is_admin:
            return True

        try:
            feature = Feature(feature)
        except ValueError:
            log.warning("entitlements.unknown_feature", feature=str(feature))
            return False

        if feature is Feature.LEARN:
            return True

        plan = self.effective_plan(user)
        if feature in (Feature.MARKET, Feature.TRADES):
            return plan in _PAID_PLANS
        return plan is Plan.PREMIUM

    def effective_plan(self, user: User) -> Plan:
        if self.is_plan_expired(user):
            return Plan.EXPIRED
        return user.plan

    # ── plan_expiry clock ──

    def is_plan_expired(self, user: Optional[User]) -> bool:
        if user is None or user.is_admin or user.plan is not Plan.FREE:
            return False
        expiry = parse_timestamp(user.plan_expiry)
        if expiry is None:
            # Unreadable expiry on a free plan is treated as already lapsed
            log.warning("entitlements.bad_plan_expiry", user_id=user.id, value=str(user.plan_expiry))
            return True
        return self.now() > expiry

    def get_remaining_days(self, user: Optional[User]) -> Optional[int]:
        if user is None or user.is_admin or user.plan is not Plan.FREE:
            return None
        expiry = parse_timestamp(user.plan_expiry)
        if expiry is None:
            return 0
        return _days_ceil(expiry - self.now())

    # ── created_at clock ──

    def trial_end(self, user: User) -> Optional[datetime]:
        created = parse_timestamp(user.created_at)
        if created is None:
            return None
        return created + timedelta(days=self.trial_days)

    def trial_status(self, user: User) -> TrialStatus:
        end = self.trial_end(user)
        if end is None:
            return TrialStatus(expired=self._on_trial(user), days_left=0)
        now = self.now()
        expired = self._on_trial(user) and now > end
        return TrialStatus(expired=expired, days_left=_days_ceil(end - now))

    @staticmethod
    def _on_trial(user: User) -> bool:
        return not user.is_admin and user.plan not in _PAID_PLANS

    def can_use_screener(self, user: Optional[User]) -> bool:
        if user is None:
            return False
        if user.is_admin or user.plan in _PAID_PLANS:
            return True
        if user.plan is Plan.EXPIRED:
            return False
        return not self.trial_status(user).expired

    def summarize(self, user: User) -> EntitlementSummary:
        return EntitlementSummary(
            plan=user.plan,
            effective_plan=self.effective_plan(user),
            is_admin=user.is_admin,
            features={f.value: self.has_access(user, f) for f in Feature},
            plan_expired=self.is_plan_expired(user),
            remaining_days=self.get_remaining_days(user),
            trial=self.trial_status(user),
            screener=self.can_use_screener(user),
        )
