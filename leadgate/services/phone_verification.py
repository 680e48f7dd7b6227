"""
Phone verification gate.

A phone passes when its most recent lookup record is "verified". Records are
reused until expires_at; a missing or expired record triggers a fresh provider
lookup, whose result is persisted whatever it says. Failed lookups carry no
expiry and therefore keep rejecting the phone until a newer record exists.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.errors import PhoneNotVerified, PhoneVerificationProviderError
from leadgate.models.phone_verification import (
    PhoneVerification,
    STATUS_VERIFIED,
    STATUS_FAILED,
)
from leadgate.services.phone_providers import (
    PhoneLookupClient,
    PhoneLookupError,
    STATUS_COMPLETED,
    build_lookup_client,
)
from leadgate.utils.logging import mask_phone

logger = logging.getLogger(__name__)


class PhoneVerificationService:

    def __init__(
        self,
        client: Optional[PhoneLookupClient] = None,
        ttl_minutes: Optional[int] = None,
    ):
        if client is None or ttl_minutes is None:
            from leadgate.config import get_settings
            settings = get_settings()
            client = client or build_lookup_client(settings)
            ttl_minutes = settings.phone_verification_ttl_minutes if ttl_minutes is None else ttl_minutes
        self.client = client
        self.ttl_minutes = ttl_minutes

    def is_enabled(self) -> bool:
        return self.client.is_configured()

    async def ensure_verified(self, db: AsyncSession, phone: Optional[str]) -> None:
        if not phone or not self.is_enabled():
            return

        verification = await self._latest_verification(db, phone)

        if verification is None or verification.is_expired():
            try:
                verification = await self._perform_lookup(db, phone)
            except PhoneLookupError:
                raise PhoneVerificationProviderError()

        if verification is None or not verification.is_usable():
            logger.info(
                "Phone %s not verified", mask_phone(phone),
                extra={"provider": self.client.name},
            )
            raise PhoneNotVerified()

    async def attach_lead(self, db: AsyncSession, lead_id: int, phone: Optional[str]) -> None:
        """Link the newest unclaimed verification for this phone to the lead."""
        if not phone:
            return

        result = await db.execute(
            select(PhoneVerification)
            .where(
                PhoneVerification.phone == phone,
                PhoneVerification.lead_id.is_(None),
            )
            .order_by(PhoneVerification.id.desc())
            .limit(1)
        )
        verification = result.scalar_one_or_none()
        if verification is not None:
            verification.lead_id = lead_id
            await db.flush()

    async def _perform_lookup(self, db: AsyncSession, phone: str) -> PhoneVerification:
        response = await self.client.lookup(phone)
        now = datetime.now(timezone.utc)

        verified = response.get("status") == STATUS_COMPLETED
        verification = PhoneVerification(
            phone=phone,
            status=STATUS_VERIFIED if verified else STATUS_FAILED,
            verified_at=now if verified else None,
            expires_at=now + timedelta(minutes=self.ttl_minutes) if verified else None,
            attempts=1,
            provider_response=response,
        )
        db.add(verification)
        await db.flush()

        logger.info(
            "Phone lookup %s: %s", mask_phone(phone), verification.status,
            extra={"provider": self.client.name},
        )
        return verification

    async def _latest_verification(self, db: AsyncSession, phone: str) -> Optional[PhoneVerification]:
        result = await db.execute(
            select(PhoneVerification)
            .where(PhoneVerification.phone == phone)
            .order_by(
                PhoneVerification.verified_at.desc().nulls_last(),
                PhoneVerification.id.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()
