"""
ThetaFlowz - Session Manager

Registration, login, session restore and plan changes over a UserStore.
Restore is where the lazy free → expired transition happens: there is no
background job, the rewrite occurs the first time a lapsed session is
loaded.
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Optional

import structlog

from thetaflowz.auth.entitlements import EntitlementEngine, parse_timestamp
from thetaflowz.models import Plan, User
from thetaflowz.storage import UserStore

log = structlog.get_logger(__name__)


class SessionManager:
    """Owns the persisted user profile."""

    def __init__(
        self,
        store: UserStore,
        entitlements: EntitlementEngine,
        admin_emails: list[str] | None = None,
    ):
        self._store = store
        self._entitlements = entitlements
        self._admin_emails = {e.lower() for e in (admin_emails or [])}

    def _is_admin_email(self, email: str) -> bool:
        return email.strip().lower() in self._admin_emails

    def _new_user(self, email: str, name: Optional[str], plan: Plan) -> User:
        if plan is Plan.EXPIRED:
            raise ValueError("Cannot register directly into the expired state")
        now = self._entitlements.now()
        expiry = now + timedelta(days=self._entitlements.trial_days) if plan is Plan.FREE else None
        return User(
            id=uuid.uuid4().hex,
            email=email.strip(),
            name=name or email.split("@")[0],
            is_admin=self._is_admin_email(email),
            plan=plan,
            plan_expiry=expiry,
            created_at=now,
        )

    def register(self, email: str, name: Optional[str] = None, plan: Plan | str = Plan.FREE) -> User:
        user = self._new_user(email, name, Plan(plan))
        self._store.save(user)
        log.info("session.registered", user_id=user.id, plan=user.plan.value, is_admin=user.is_admin)
        return user

    def login(self, email: str) -> User:
        """Resume the stored profile for this email, or start a new free one."""
        existing = self.restore()
        if existing is not None and existing.email.lower() == email.strip().lower():
            log.info("session.login", user_id=existing.id, resumed=True)
            return existing

        user = self._new_user(email, None, Plan.FREE)
        self._store.save(user)
        log.info("session.login", user_id=user.id, resumed=False)
        return user

    def restore(self) -> Optional[User]:
        user = self._store.load()
        if user is None:
            return None

        if user.plan is Plan.FREE and self._entitlements.is_plan_expired(user):
            user = user.model_copy(update={"plan": Plan.EXPIRED})
            self._store.save(user)
            log.info("session.plan_expired", user_id=user.id)
        return user

    def logout(self) -> None:
        self._store.clear()
        log.info("session.logout")

    def change_plan(self, plan: Plan | str) -> User:
        """Apply an upgrade or cancellation decided by the billing backend."""
        user = self.restore()
        if user is None:
            raise LookupError("No active session")

        plan = Plan(plan)
        update: dict = {"plan": plan}
        if plan in (Plan.BASIC, Plan.PREMIUM):
            update["plan_expiry"] = None
        elif plan is Plan.FREE:
            # Cancelling back to free never restarts the trial window
            created = parse_timestamp(user.created_at) or self._entitlements.now()
            update["plan_expiry"] = created + timedelta(days=self._entitlements.trial_days)

        user = user.model_copy(update=update)
        self._store.save(user)
        log.info("session.plan_changed", user_id=user.id, plan=plan.value)
        return user
