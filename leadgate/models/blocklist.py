"""
BlockListEntry model - standing rules matched against incoming leads.
Any single matching attribute on a blacklist row marks the lead as blocked.
Managed outside the intake pipeline; the pipeline only reads it.
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import BigInteger, String, Text, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from leadgate.database import Base
from leadgate.models.lead import BigIntId

BLACKLIST = "blacklist"
WHITELIST = "whitelist"


class BlockListEntry(Base):
    __tablename__ = "blocklist"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)

    user_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    quiz_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    lead_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    fingerprint: Mapped[Optional[str]] = mapped_column(String(255))
    ip_address: Mapped[Optional[str]] = mapped_column(String(45))
    email: Mapped[Optional[str]] = mapped_column(String(150))
    phone: Mapped[Optional[str]] = mapped_column(String(150))

    type: Mapped[str] = mapped_column(
        String(10), nullable=False, default=BLACKLIST
    )  # blacklist, whitelist

    reason: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("ix_blocklist_user_type", "user_id", "type"),
        Index("ix_blocklist_quiz_type", "quiz_id", "type"),
        Index("ix_blocklist_fingerprint", "fingerprint"),
        Index("ix_blocklist_ip_address", "ip_address"),
        Index("ix_blocklist_email", "email"),
        Index("ix_blocklist_phone", "phone"),
        Index("ix_blocklist_lead_id", "lead_id"),
    )

    def __repr__(self) -> str:
        return f"<BlockListEntry {self.type} id={self.id}>"
