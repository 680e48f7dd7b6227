"""
Lead rate limiters - point-in-time counts over the leads table.

No counters are kept anywhere: every call recounts rows with
created_at >= now - window (inclusive), so limits follow the data and
survive restarts. Concurrent submissions from one fingerprint can both
pass before either commits; that race is accepted.

Limits:
- global user:     20,000 leads / 60 min per user_id
- client leads:    5 leads / 20 min per fingerprint
- client quizzes:  5 distinct quizzes / 20 min per fingerprint
- test leads:      configurable (default 20 / 10 min) per fingerprint
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.errors import (
    RateLimitExceeded,
    SCOPE_GLOBAL_USER,
    SCOPE_CLIENT_LEADS,
    SCOPE_CLIENT_QUIZZES,
    SCOPE_TEST_LEAD,
)
from leadgate.models.lead import Lead

logger = logging.getLogger(__name__)

USER_LIMIT = 20000
USER_WINDOW_MINUTES = 60

CLIENT_LEADS_LIMIT = 5
CLIENT_QUIZZES_LIMIT = 5
CLIENT_WINDOW_MINUTES = 20


def window_start(minutes: int, now: Optional[datetime] = None) -> datetime:
    """Inclusive lower bound of a sliding window ending now."""
    return (now or datetime.now(timezone.utc)) - timedelta(minutes=minutes)


async def _count_leads(db: AsyncSession, *conditions) -> int:
    result = await db.execute(select(func.count(Lead.id)).where(*conditions))
    return result.scalar() or 0


class UserRateLimiter:
    """Global per-user cap across all of a user's quizzes."""

    def __init__(self, limit: int = USER_LIMIT, window_minutes: int = USER_WINDOW_MINUTES):
        self.limit = limit
        self.window_minutes = window_minutes

    async def ensure_global_limit(self, db: AsyncSession, user_id: Optional[int]) -> None:
        if not user_id:
            return

        count = await _count_leads(
            db,
            Lead.user_id == user_id,
            Lead.created_at >= window_start(self.window_minutes),
        )
        if count >= self.limit:
            logger.warning(
                "Global user lead limit reached: count=%d limit=%d",
                count, self.limit,
                extra={"user_id": user_id, "scope": SCOPE_GLOBAL_USER},
            )
            raise RateLimitExceeded(
                SCOPE_GLOBAL_USER, self.limit, self.window_minutes,
                f"Global leads limit reached for user ({self.limit} in {self.window_minutes} minutes)",
            )


class ClientIdRateLimiter:
    """Per-fingerprint caps on lead volume and on the number of distinct quizzes."""

    def __init__(
        self,
        leads_limit: int = CLIENT_LEADS_LIMIT,
        quizzes_limit: int = CLIENT_QUIZZES_LIMIT,
        window_minutes: int = CLIENT_WINDOW_MINUTES,
    ):
        self.leads_limit = leads_limit
        self.quizzes_limit = quizzes_limit
        self.window_minutes = window_minutes

    async def ensure_leads_limit(self, db: AsyncSession, fingerprint: Optional[str]) -> None:
        if not fingerprint:
            return

        count = await _count_leads(
            db,
            Lead.fingerprint == fingerprint,
            Lead.created_at >= window_start(self.window_minutes),
        )
        if count >= self.leads_limit:
            logger.warning(
                "Client lead limit reached: count=%d limit=%d",
                count, self.leads_limit,
                extra={"fingerprint": fingerprint, "scope": SCOPE_CLIENT_LEADS},
            )
            raise RateLimitExceeded(
                SCOPE_CLIENT_LEADS, self.leads_limit, self.window_minutes,
                f"Leads limit reached for client ({self.leads_limit} in {self.window_minutes} minutes)",
            )

    async def ensure_quizzes_limit(
        self, db: AsyncSession, fingerprint: Optional[str], quiz_id: Optional[int],
    ) -> None:
        """
        Reject a submission to a *new* quiz once the fingerprint has already
        touched quizzes_limit distinct quizzes in the window. Further leads
        to quizzes already seen do not count against this budget.
        """
        if not fingerprint or not quiz_id:
            return

        result = await db.execute(
            select(Lead.quiz_id)
            .where(
                Lead.fingerprint == fingerprint,
                Lead.created_at >= window_start(self.window_minutes),
                Lead.quiz_id.is_not(None),
            )
            .distinct()
        )
        seen_quizzes = set(result.scalars().all())

        if quiz_id not in seen_quizzes and len(seen_quizzes) >= self.quizzes_limit:
            logger.warning(
                "Client quiz limit reached: distinct=%d limit=%d",
                len(seen_quizzes), self.quizzes_limit,
                extra={"fingerprint": fingerprint, "quiz_id": quiz_id, "scope": SCOPE_CLIENT_QUIZZES},
            )
            raise RateLimitExceeded(
                SCOPE_CLIENT_QUIZZES, self.quizzes_limit, self.window_minutes,
                f"Quizzes limit reached for client "
                f"({self.quizzes_limit} different quizzes in {self.window_minutes} minutes)",
            )


class TestLeadLimiter:
    """Caps how many test leads one fingerprint may submit."""

    __test__ = False  # not a pytest class

    def __init__(self, limit: Optional[int] = None, window_minutes: Optional[int] = None):
        if limit is None or window_minutes is None:
            from leadgate.config import get_settings
            settings = get_settings()
            limit = settings.test_lead_limit if limit is None else limit
            window_minutes = settings.test_lead_window_minutes if window_minutes is None else window_minutes
        self.limit = limit
        self.window_minutes = window_minutes

    async def ensure_within_limit(self, db: AsyncSession, lead: Lead) -> None:
        if not lead.is_test or not lead.fingerprint:
            return

        count = await _count_leads(
            db,
            Lead.fingerprint == lead.fingerprint,
            Lead.is_test == True,  # noqa: E712
            Lead.created_at >= window_start(self.window_minutes),
        )
        if count >= self.limit:
            logger.warning(
                "Test lead limit reached: count=%d limit=%d",
                count, self.limit,
                extra={"fingerprint": lead.fingerprint, "scope": SCOPE_TEST_LEAD},
            )
            raise RateLimitExceeded(
                SCOPE_TEST_LEAD, self.limit, self.window_minutes,
                f"Test leads limit reached for client ({self.limit} in {self.window_minutes} minutes)",
            )
