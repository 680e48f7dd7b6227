"""
Lead intake pipeline - every guard a new lead passes before its row is written.

Order matters and is fixed:
 1. defaults (external ids, data, fingerprint from header)
 2. user/quiz reference validation        - terminating
 3. phone verification                     - terminating
 4. global user rate limit                 - terminating
 5. client (fingerprint) lead rate limit   - terminating
 6. client (fingerprint) quiz rate limit   - terminating
 7. test-lead rate limit                   - terminating
 8. duplicate linking
 9. payment signal
10. block list
11. geo-enrichment
Then insert, attach the phone verification, and queue integration delivery.
The post-insert steps never fail the request. Each runs in its own savepoint
so a failed flush there leaves the lead row and the session intact.
"""
import logging
import uuid
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.models.lead import Lead
from leadgate.services.blocklist import LeadBlockService
from leadgate.services.duplicates import DuplicateDetector
from leadgate.services.geolocation import GeoLocationService
from leadgate.services.lead_validation import LeadValidationService
from leadgate.services.payments import LeadPaymentService
from leadgate.services.phone_verification import PhoneVerificationService
from leadgate.services.rate_limiting import (
    UserRateLimiter,
    ClientIdRateLimiter,
    TestLeadLimiter,
)
from leadgate.services.task_dispatch import dispatch_lead
from leadgate.utils.logging import mask_phone

logger = logging.getLogger(__name__)


class LeadIntakePipeline:

    def __init__(
        self,
        validation: Optional[LeadValidationService] = None,
        phone_verification: Optional[PhoneVerificationService] = None,
        user_limiter: Optional[UserRateLimiter] = None,
        client_limiter: Optional[ClientIdRateLimiter] = None,
        test_lead_limiter: Optional[TestLeadLimiter] = None,
        duplicates: Optional[DuplicateDetector] = None,
        payments: Optional[LeadPaymentService] = None,
        block_service: Optional[LeadBlockService] = None,
        geolocation: Optional[GeoLocationService] = None,
        dispatch_integrations: bool = True,
    ):
        self.block_service = block_service or LeadBlockService()
        self.validation = validation or LeadValidationService(self.block_service)
        self.phone_verification = phone_verification or PhoneVerificationService()
        self.user_limiter = user_limiter or UserRateLimiter()
        self.client_limiter = client_limiter or ClientIdRateLimiter()
        self.test_lead_limiter = test_lead_limiter or TestLeadLimiter()
        self.duplicates = duplicates or DuplicateDetector()
        self.payments = payments or LeadPaymentService()
        self.geolocation = geolocation or GeoLocationService()
        self.dispatch_integrations = dispatch_integrations

    @staticmethod
    def apply_defaults(lead: Lead, fingerprint_header: Optional[str] = None) -> Lead:
        from leadgate.config import get_settings
        settings = get_settings()

        if not lead.external_system:
            lead.external_system = settings.default_external_system
        if not lead.external_entity:
            lead.external_entity = settings.default_external_entity
        if not lead.external_entity_id:
            lead.external_entity_id = str(uuid.uuid4())
        if not lead.data:
            lead.data = {}
        if not lead.fingerprint and fingerprint_header:
            lead.fingerprint = fingerprint_header
        if lead.paid is None:
            lead.paid = False
        if lead.blocked is None:
            lead.blocked = False
        if lead.is_test is None:
            lead.is_test = False
        return lead

    async def run_guards(self, db: AsyncSession, lead: Lead) -> Lead:
        """Steps 2-11. Raises IntakeError subclasses; nothing is written on failure."""
        await self.validation.validate_lead(db, lead)
        await self.phone_verification.ensure_verified(db, lead.phone)

        await self.user_limiter.ensure_global_limit(db, lead.user_id)
        await self.client_limiter.ensure_leads_limit(db, lead.fingerprint)
        await self.client_limiter.ensure_quizzes_limit(db, lead.fingerprint, lead.quiz_id)
        await self.test_lead_limiter.ensure_within_limit(db, lead)

        await self.duplicates.link_duplicate(db, lead)

        if not lead.paid and self.payments.should_mark_paid(lead.data or {}):
            lead.paid = True

        if await self.block_service.should_block(db, lead):
            lead.blocked = True
            logger.info(
                "Lead matched block list", extra={"user_id": lead.user_id, "quiz_id": lead.quiz_id},
            )

        if lead.ip_address and (not lead.city or not lead.country):
            location = await self.geolocation.get_location_by_ip(lead.ip_address)
            if not lead.city and location.get("city"):
                lead.city = location["city"]
            if not lead.country and location.get("country"):
                lead.country = location["country"]

        return lead

    async def intake(
        self,
        db: AsyncSession,
        lead: Lead,
        fingerprint_header: Optional[str] = None,
    ) -> Lead:
        self.apply_defaults(lead, fingerprint_header)
        await self.run_guards(db, lead)

        db.add(lead)
        await db.flush()

        logger.info(
            "Lead created: phone=%s paid=%s blocked=%s duplicate_of=%s",
            mask_phone(lead.phone), lead.paid, lead.blocked, lead.equal_answer_id,
            extra={"lead_id": lead.id, "user_id": lead.user_id, "quiz_id": lead.quiz_id},
        )
        lead_id = lead.id

        try:
            async with db.begin_nested():
                await self.phone_verification.attach_lead(db, lead_id, lead.phone)
        except Exception as e:
            logger.warning(
                "Failed to attach phone verification: %s", str(e), extra={"lead_id": lead_id},
            )

        if self.dispatch_integrations and not lead.blocked:
            try:
                async with db.begin_nested():
                    await dispatch_lead(db, lead_id)
            except Exception as e:
                logger.warning(
                    "Failed to queue integration dispatch: %s", str(e), extra={"lead_id": lead_id},
                )

        return lead
