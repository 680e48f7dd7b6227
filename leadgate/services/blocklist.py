"""
Block list matching for incoming leads.

A lead is blocked when ANY of its identifying attributes (phone, email,
fingerprint, ip, quiz, user) equals the same column on a blacklist row.
Attributes the lead does not carry are left out of the match entirely.
"""
import logging
from typing import Optional

from sqlalchemy import select, exists, or_
from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.models.blocklist import BlockListEntry, BLACKLIST
from leadgate.models.lead import Lead

logger = logging.getLogger(__name__)

# (lead attribute, block list column)
_MATCH_FIELDS = (
    ("phone", BlockListEntry.phone),
    ("email", BlockListEntry.email),
    ("fingerprint", BlockListEntry.fingerprint),
    ("ip_address", BlockListEntry.ip_address),
    ("quiz_id", BlockListEntry.quiz_id),
    ("user_id", BlockListEntry.user_id),
)


class LeadBlockService:

    async def should_block(self, db: AsyncSession, lead: Lead) -> bool:
        clauses = [
            column == getattr(lead, attr)
            for attr, column in _MATCH_FIELDS
            if getattr(lead, attr)
        ]
        if not clauses:
            return False

        try:
            result = await db.execute(
                select(
                    exists().where(
                        BlockListEntry.type == BLACKLIST,
                        or_(*clauses),
                    )
                )
            )
            return bool(result.scalar())
        except Exception as e:
            # Lead capture wins over block list enforcement
            logger.warning("Block list lookup failed: %s. Not blocking.", str(e))
            return False

    async def is_quiz_blocked(self, db: AsyncSession, quiz_id: Optional[int]) -> bool:
        if quiz_id is None:
            return False
        result = await db.execute(
            select(
                exists().where(
                    BlockListEntry.quiz_id == quiz_id,
                    BlockListEntry.type == BLACKLIST,
                )
            )
        )
        return bool(result.scalar())
