"""
Lead resend - queue existing leads for another delivery to their integrations.
An empty integration list means "every integration the lead's owner has configured".
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.errors import LeadNotFound, ValidationFailed
from leadgate.models.lead import Lead
from leadgate.services.task_dispatch import dispatch_lead

logger = logging.getLogger(__name__)

VALID_INTEGRATION_TYPES = (
    "email",
    "amocrm",
    "telegram",
    "bitrix24",
    "webhooks",
    "retailcrm",
    "getresponse",
    "sendpulse",
    "unisender",
    "lptracker",
    "uontravel",
)


def validate_integration_types(integration_types: Optional[list[str]]) -> None:
    if not integration_types:
        return

    invalid = [t for t in integration_types if t not in VALID_INTEGRATION_TYPES]
    if invalid:
        raise ValidationFailed(
            "Invalid integration types: " + ", ".join(invalid),
            field="integration_types",
        )


class LeadResendService:

    async def resend_lead(
        self,
        db: AsyncSession,
        lead_id: int,
        integration_types: Optional[list[str]] = None,
        credentials: Optional[dict] = None,
    ) -> dict:
        lead = await db.get(Lead, lead_id)
        if lead is None:
            raise LeadNotFound(lead_id)

        validate_integration_types(integration_types)

        if not integration_types:
            await dispatch_lead(db, lead_id)
            logger.info("Lead queued for resend to all integrations", extra={"lead_id": lead_id})
            return {
                "success": True,
                "lead_id": lead_id,
                "method": "all_integrations",
                "message": "Lead resend queued to all configured integrations",
            }

        await dispatch_lead(db, lead_id, integrations=integration_types, credentials=credentials)
        logger.info(
            "Lead queued for resend to %d integrations", len(integration_types),
            extra={"lead_id": lead_id},
        )
        return {
            "success": True,
            "lead_id": lead_id,
            "integration_types": list(integration_types),
            "integrations_count": len(integration_types),
            "message": "Lead resend queued to specified integrations",
        }

    async def bulk_resend(
        self,
        db: AsyncSession,
        lead_ids: list[int],
        integration_types: Optional[list[str]] = None,
        credentials: Optional[dict] = None,
    ) -> dict:
        validate_integration_types(integration_types)

        dispatched = 0
        errors = []
        for lead_id in lead_ids:
            try:
                await self.resend_lead(db, lead_id, integration_types, credentials)
                dispatched += 1
            except LeadNotFound:
                logger.warning("Lead not found in bulk resend", extra={"lead_id": lead_id})
                errors.append({"lead_id": lead_id, "error": "Lead not found"})
            except Exception as e:
                logger.warning("Failed to resend lead in bulk: %s", str(e), extra={"lead_id": lead_id})
                errors.append({"lead_id": lead_id, "error": str(e)})

        logger.info(
            "Bulk resend completed: %d/%d dispatched, %d errors",
            dispatched, len(lead_ids), len(errors),
        )
        return {
            "dispatched_count": dispatched,
            "total_count": len(lead_ids),
            "errors_count": len(errors),
            "errors": errors,
        }
