"""
Tests for leadgate/services/rate_limiting.py — count-based lead limits.
"""
import pytest

from leadgate.errors import (
    RateLimitExceeded,
    SCOPE_GLOBAL_USER,
    SCOPE_CLIENT_LEADS,
    SCOPE_CLIENT_QUIZZES,
    SCOPE_TEST_LEAD,
)
from leadgate.models.lead import Lead
from leadgate.services.rate_limiting import (
    UserRateLimiter,
    ClientIdRateLimiter,
    TestLeadLimiter,
    window_start,
)


class TestWindowStart:
    def test_subtracts_minutes(self):
        from datetime import datetime, timezone
        now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
        assert window_start(20, now) == datetime(2026, 1, 1, 11, 40, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Global user limit
# ---------------------------------------------------------------------------


class TestUserRateLimiter:
    async def test_below_limit_passes(self, db, make_lead):
        limiter = UserRateLimiter(limit=3, window_minutes=60)
        for _ in range(2):
            await make_lead(user_id=7)

        await limiter.ensure_global_limit(db, 7)

    async def test_at_limit_raises(self, db, make_lead):
        limiter = UserRateLimiter(limit=3, window_minutes=60)
        for _ in range(3):
            await make_lead(user_id=7)

        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.ensure_global_limit(db, 7)

        assert exc_info.value.scope == SCOPE_GLOBAL_USER
        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after_seconds == 3600

    async def test_old_leads_outside_window_ignored(self, db, make_lead):
        limiter = UserRateLimiter(limit=2, window_minutes=60)
        await make_lead(user_id=7, minutes_ago=90)
        await make_lead(user_id=7, minutes_ago=61)
        await make_lead(user_id=7)

        await limiter.ensure_global_limit(db, 7)

    async def test_other_users_not_counted(self, db, make_lead):
        limiter = UserRateLimiter(limit=1, window_minutes=60)
        await make_lead(user_id=8)

        await limiter.ensure_global_limit(db, 7)

    async def test_no_user_is_noop(self, db):
        await UserRateLimiter(limit=0).ensure_global_limit(db, None)

    def test_default_limits(self):
        limiter = UserRateLimiter()
        assert limiter.limit == 20000
        assert limiter.window_minutes == 60


# ---------------------------------------------------------------------------
# Client (fingerprint) limits
# ---------------------------------------------------------------------------


class TestClientLeadsLimit:
    async def test_sixth_lead_in_window_rejected(self, db, make_lead):
        limiter = ClientIdRateLimiter()
        for _ in range(5):
            await make_lead(fingerprint="F1", quiz_id=1)

        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.ensure_leads_limit(db, "F1")

        assert exc_info.value.scope == SCOPE_CLIENT_LEADS
        assert exc_info.value.limit == 5
        assert exc_info.value.window_minutes == 20

    async def test_fifth_lead_allowed(self, db, make_lead):
        for _ in range(4):
            await make_lead(fingerprint="F1")

        await ClientIdRateLimiter().ensure_leads_limit(db, "F1")

    async def test_window_expiry_frees_budget(self, db, make_lead):
        for _ in range(5):
            await make_lead(fingerprint="F1", minutes_ago=25)

        await ClientIdRateLimiter().ensure_leads_limit(db, "F1")

    async def test_soft_deleted_leads_still_count(self, db, make_lead):
        from datetime import datetime, timezone
        for _ in range(5):
            await make_lead(fingerprint="F1", deleted_at=datetime.now(timezone.utc))

        with pytest.raises(RateLimitExceeded):
            await ClientIdRateLimiter().ensure_leads_limit(db, "F1")

    async def test_missing_fingerprint_is_noop(self, db):
        await ClientIdRateLimiter(leads_limit=0).ensure_leads_limit(db, None)
        await ClientIdRateLimiter(leads_limit=0).ensure_leads_limit(db, "")


class TestClientQuizzesLimit:
    async def test_new_quiz_rejected_after_five_distinct(self, db, make_lead):
        for quiz_id in range(1, 6):
            await make_lead(fingerprint="F1", quiz_id=quiz_id)

        with pytest.raises(RateLimitExceeded) as exc_info:
            await ClientIdRateLimiter().ensure_quizzes_limit(db, "F1", 6)

        assert exc_info.value.scope == SCOPE_CLIENT_QUIZZES

    async def test_already_seen_quiz_allowed(self, db, make_lead):
        for quiz_id in range(1, 6):
            await make_lead(fingerprint="F1", quiz_id=quiz_id)

        await ClientIdRateLimiter().ensure_quizzes_limit(db, "F1", 3)

    async def test_repeat_submissions_count_once(self, db, make_lead):
        for _ in range(3):
            await make_lead(fingerprint="F1", quiz_id=1)
        await make_lead(fingerprint="F1", quiz_id=2)

        await ClientIdRateLimiter().ensure_quizzes_limit(db, "F1", 3)

    async def test_missing_quiz_is_noop(self, db, make_lead):
        for quiz_id in range(1, 6):
            await make_lead(fingerprint="F1", quiz_id=quiz_id)

        await ClientIdRateLimiter().ensure_quizzes_limit(db, "F1", None)


# ---------------------------------------------------------------------------
# Test-lead limit
# ---------------------------------------------------------------------------


class TestTestLeadLimiter:
    async def test_limit_reached_raises(self, db, make_lead):
        limiter = TestLeadLimiter(limit=2, window_minutes=10)
        await make_lead(fingerprint="F1", is_test=True)
        await make_lead(fingerprint="F1", is_test=True)

        candidate = Lead(fingerprint="F1", is_test=True)
        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter.ensure_within_limit(db, candidate)

        assert exc_info.value.scope == SCOPE_TEST_LEAD
        assert exc_info.value.retry_after_seconds == 600

    async def test_real_leads_not_counted(self, db, make_lead):
        limiter = TestLeadLimiter(limit=2, window_minutes=10)
        for _ in range(4):
            await make_lead(fingerprint="F1", is_test=False)

        await limiter.ensure_within_limit(db, Lead(fingerprint="F1", is_test=True))

    async def test_non_test_lead_is_noop(self, db, make_lead):
        limiter = TestLeadLimiter(limit=0, window_minutes=10)
        await limiter.ensure_within_limit(db, Lead(fingerprint="F1", is_test=False))

    async def test_defaults_come_from_settings(self):
        limiter = TestLeadLimiter()
        assert limiter.limit == 20
        assert limiter.window_minutes == 10
