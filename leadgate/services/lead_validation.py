"""
Reference validation - the lead's user must exist and its quiz must not be blacklisted.
There is no quiz table here; a quiz only "exists" upstream, so only the block is checked.
"""
import logging
from typing import Optional

from sqlalchemy import select, exists
from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.errors import ValidationFailed
from leadgate.models.lead import Lead
from leadgate.models.user import User
from leadgate.services.blocklist import LeadBlockService

logger = logging.getLogger(__name__)


class LeadValidationService:

    def __init__(self, block_service: Optional[LeadBlockService] = None):
        self.block_service = block_service or LeadBlockService()

    async def validate_user_id(self, db: AsyncSession, user_id: Optional[int]) -> None:
        if user_id is None:
            return

        result = await db.execute(select(exists().where(User.id == user_id)))
        if not result.scalar():
            raise ValidationFailed("User does not exist", field="userId")

    async def validate_quiz_id(self, db: AsyncSession, quiz_id: Optional[int]) -> None:
        if quiz_id is None:
            return

        if await self.block_service.is_quiz_blocked(db, quiz_id):
            logger.info("Rejected lead for blocked quiz", extra={"quiz_id": quiz_id})
            raise ValidationFailed("Quiz is blocked", field="quizId")

    async def validate_lead(self, db: AsyncSession, lead: Lead) -> None:
        await self.validate_user_id(db, lead.user_id)
        await self.validate_quiz_id(db, lead.quiz_id)
