"""
Duplicate linking - points a new lead at the latest live lead with the same fingerprint.
Only the in-flight entity is touched; it is persisted with the lead's insert.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.models.lead import Lead

logger = logging.getLogger(__name__)


class DuplicateDetector:

    async def link_duplicate(self, db: AsyncSession, lead: Lead) -> None:
        if not lead.fingerprint:
            return

        result = await db.execute(
            select(Lead.id)
            .where(
                Lead.fingerprint == lead.fingerprint,
                Lead.deleted_at.is_(None),
            )
            .order_by(Lead.id.desc())
            .limit(1)
        )
        existing_id = result.scalar_one_or_none()

        if existing_id is not None and existing_id != lead.id:
            lead.equal_answer_id = existing_id
            logger.info(
                "Lead linked to earlier submission %d", existing_id,
                extra={"fingerprint": lead.fingerprint},
            )
