"""
Lead model - every form/quiz submission that passed the intake pipeline.
Rows are soft-deleted (deleted_at) and only hard-deleted by the retention cleanup.
"""
import enum
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import BigInteger, Integer, String, Boolean, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from leadgate.database import Base

# BIGSERIAL on PostgreSQL, INTEGER (rowid alias) on SQLite so autoincrement works in tests
BigIntId = BigInteger().with_variant(Integer, "sqlite")


class LeadStatus(enum.IntEnum):
    NEW = 1
    AT_WORK = 2
    SUCCESS = 3
    DECLINED = 4


class Lead(Base):
    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    # Ownership
    user_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    project_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    quiz_id: Mapped[Optional[int]] = mapped_column(BigInteger)

    # External identification (upstream quiz/workspace)
    external_id: Mapped[Optional[str]] = mapped_column(String(150), unique=True)
    external_system: Mapped[str] = mapped_column(String(255), nullable=False)
    external_entity: Mapped[str] = mapped_column(String(255), nullable=False)
    external_entity_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_project_id: Mapped[Optional[str]] = mapped_column(String(255))

    # Contact info
    name: Mapped[Optional[str]] = mapped_column(String(150))
    email: Mapped[Optional[str]] = mapped_column(String(150))
    phone: Mapped[Optional[str]] = mapped_column(String(150))
    messengers: Mapped[Optional[dict]] = mapped_column(JSONB)
    # {"version": 1, "payload": "<fernet token>"} - see services/contact_encryption.py
    contacts: Mapped[Optional[dict]] = mapped_column(JSONB)

    # Location
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    country: Mapped[Optional[str]] = mapped_column(String(100))

    # UTM attribution
    utm_source: Mapped[Optional[str]] = mapped_column(String(255))
    utm_medium: Mapped[Optional[str]] = mapped_column(String(255))
    utm_campaign: Mapped[Optional[str]] = mapped_column(String(255))
    utm_content: Mapped[Optional[str]] = mapped_column(String(255))
    utm_term: Mapped[Optional[str]] = mapped_column(String(255))

    # Answers payload
    data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=int(LeadStatus.NEW))
    integration_status: Mapped[Optional[str]] = mapped_column(String(255))
    integration_data: Mapped[Optional[dict]] = mapped_column(JSONB)

    # Flags
    is_test: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    viewed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Duplicate detection
    fingerprint: Mapped[Optional[str]] = mapped_column(String(255))
    equal_answer_id: Mapped[Optional[int]] = mapped_column(BigInteger)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_leads_user_created", "user_id", "created_at"),
        Index("ix_leads_project_created", "project_id", "created_at"),
        Index("ix_leads_quiz_created", "quiz_id", "created_at"),
        Index("ix_leads_status_created", "status", "created_at"),
        Index("ix_leads_fingerprint_created", "fingerprint", "created_at"),
        Index("ix_leads_phone", "phone"),
        Index("ix_leads_ip_address", "ip_address"),
        Index("ix_leads_external_entity_id", "external_entity_id"),
        Index("ix_leads_deleted_at", "deleted_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        masked = self.phone[:6] + "***" if self.phone else "unknown"
        return f"<Lead id={self.id} {masked} status={self.status}>"
