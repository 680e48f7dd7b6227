"""
PhoneVerification model - one provider lookup per row.
Status flow: pending -> verified | failed. "expired" is derived from expires_at,
never written by the intake gate.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import BigInteger, Integer, String, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from leadgate.database import Base
from leadgate.models.lead import BigIntId

STATUS_PENDING = "pending"
STATUS_VERIFIED = "verified"
STATUS_FAILED = "failed"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every timestamp we store is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class PhoneVerification(Base):
    __tablename__ = "phone_verifications"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    lead_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    phone: Mapped[str] = mapped_column(String(150), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(10))

    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=STATUS_PENDING
    )  # pending, verified, failed

    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    provider_response: Mapped[Optional[dict]] = mapped_column(JSONB)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_phone_verifications_lead_id", "lead_id"),
        Index("ix_phone_verifications_phone", "phone"),
        Index("ix_phone_verifications_status", "status"),
        Index("ix_phone_verifications_created_at", "created_at"),
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        return now > as_utc(self.expires_at)

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        return self.status == STATUS_VERIFIED and not self.is_expired(now)

    def __repr__(self) -> str:
        masked = self.phone[:6] + "***" if self.phone else "unknown"
        return f"<PhoneVerification {masked} status={self.status}>"
