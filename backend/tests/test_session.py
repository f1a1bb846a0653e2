"""
Session Manager Tests

Registration, login resume, the lazy free → expired rewrite on restore,
and plan changes.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from thetaflowz.auth.entitlements import EntitlementEngine
from thetaflowz.auth.session import SessionManager
from thetaflowz.models import Plan
from thetaflowz.storage import USER_KEY, MemoryStorage, UserStore

ADMIN = "admin@thetaflowz.test"


@pytest.fixture
def sessions(clock, storage):
    engine = EntitlementEngine(clock=clock, trial_days=7)
    return SessionManager(UserStore(storage), engine, admin_emails=[ADMIN])


class TestRegister:

    def test_free_registration_sets_seven_day_expiry(self, sessions, clock):
        user = sessions.register("new@example.com", "New Trader")
        assert user.plan == Plan.FREE
        assert user.plan_expiry == clock.now + timedelta(days=7)
        assert user.created_at == clock.now
        assert user.is_admin is False
        assert len(user.id) == 32

    def test_paid_registration_has_no_expiry(self, sessions):
        user = sessions.register("pro@example.com", plan="premium")
        assert user.plan == Plan.PREMIUM
        assert user.plan_expiry is None

    def test_name_defaults_to_email_local_part(self, sessions):
        assert sessions.register("jane.doe@example.com").name == "jane.doe"

    def test_admin_by_email_case_insensitive(self, sessions):
        assert sessions.register("Admin@ThetaFlowz.test").is_admin is True

    def test_registration_persists(self, sessions, storage):
        user = sessions.register("new@example.com")
        assert USER_KEY in storage.items
        assert sessions.restore().id == user.id

    def test_cannot_register_expired(self, sessions):
        with pytest.raises(ValueError):
            sessions.register("x@example.com", plan=Plan.EXPIRED)


class TestLogin:

    def test_login_resumes_stored_user(self, sessions):
        first = sessions.register("trader@example.com", plan="basic")
        again = sessions.login("TRADER@example.com ")
        assert again.id == first.id
        assert again.plan == Plan.BASIC

    def test_login_other_email_starts_new_free_user(self, sessions):
        first = sessions.register("one@example.com", plan="basic")
        other = sessions.login("two@example.com")
        assert other.id != first.id
        assert other.plan == Plan.FREE
        assert sessions.restore().email == "two@example.com"

    def test_login_admin(self, sessions):
        assert sessions.login(ADMIN).is_admin is True


class TestRestore:

    def test_restore_without_session(self, sessions):
        assert sessions.restore() is None

    def test_restore_corrupt_json_is_logged_out(self, clock):
        storage = MemoryStorage({USER_KEY: "{not json"})
        sessions = SessionManager(UserStore(storage), EntitlementEngine(clock=clock))
        assert sessions.restore() is None

    def test_lapsed_free_user_rewritten_to_expired_once(self, sessions, clock, storage):
        sessions.register("late@example.com")
        clock.advance(days=8)

        restored = sessions.restore()
        assert restored.plan == Plan.EXPIRED
        # persisted so the next restore reads it directly
        assert '"expired"' in storage.items[USER_KEY]
        assert sessions.restore().plan == Plan.EXPIRED

    def test_active_free_user_untouched(self, sessions, clock):
        sessions.register("early@example.com")
        clock.advance(days=3)
        assert sessions.restore().plan == Plan.FREE

    def test_admin_never_rewritten(self, sessions, clock):
        sessions.register(ADMIN)
        clock.advance(days=30)
        assert sessions.restore().plan == Plan.FREE

    def test_logout_clears_session(self, sessions, storage):
        sessions.register("bye@example.com")
        sessions.logout()
        assert sessions.restore() is None
        assert USER_KEY not in storage.items


class TestChangePlan:

    def test_upgrade_clears_expiry(self, sessions):
        sessions.register("up@example.com")
        user = sessions.change_plan("basic")
        assert user.plan == Plan.BASIC
        assert user.plan_expiry is None
        assert sessions.restore().plan == Plan.BASIC

    def test_upgrade_from_expired(self, sessions, clock):
        sessions.register("late@example.com")
        clock.advance(days=10)
        assert sessions.restore().plan == Plan.EXPIRED
        assert sessions.change_plan(Plan.PREMIUM).plan == Plan.PREMIUM

    def test_cancel_to_free_does_not_restart_trial(self, sessions, clock):
        created = clock.now
        sessions.register("back@example.com", plan="basic")
        clock.advance(days=20)
        user = sessions.change_plan("free")
        assert user.plan == Plan.FREE
        assert user.plan_expiry == created + timedelta(days=7)
        assert sessions.restore().plan == Plan.EXPIRED

    def test_change_plan_requires_session(self, sessions):
        with pytest.raises(LookupError):
            sessions.change_plan("basic")
