"""
Lead cleanup worker - retention for the leads table.
Runs daily when LEAD_CLEANUP_ENABLED is set:
- abandoned: live leads untouched for the retention period are soft-deleted
- force: leads soft-deleted longer ago than the retention period are hard-deleted
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.database import async_session_factory
from leadgate.models.lead import Lead
from leadgate.utils.redis import heartbeat

logger = logging.getLogger(__name__)

WORKER_NAME = "lead_cleanup"


def years_ago(years: int, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    try:
        return now.replace(year=now.year - years)
    except ValueError:
        # Feb 29 -> Feb 28
        return now.replace(year=now.year - years, day=28)


async def _force_delete(db: AsyncSession, cutoff: datetime) -> int:
    result = await db.execute(
        delete(Lead)
        .where(Lead.deleted_at.is_not(None), Lead.deleted_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def _soft_delete_abandoned(db: AsyncSession, cutoff: datetime) -> int:
    result = await db.execute(
        update(Lead)
        .where(Lead.deleted_at.is_(None), Lead.updated_at < cutoff)
        .values(deleted_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


async def cleanup_cycle(
    force: bool = False,
    abandoned: bool = False,
    retention_years: Optional[int] = None,
    db: Optional[AsyncSession] = None,
) -> dict:
    """
    Run one retention pass. Returns {"force_deleted": n, "abandoned": n}.
    With db given, the caller owns the transaction.
    """
    if retention_years is None:
        from leadgate.config import get_settings
        retention_years = get_settings().lead_retention_years

    cutoff = years_ago(retention_years)
    counts = {"force_deleted": 0, "abandoned": 0}

    async def _run(session: AsyncSession) -> None:
        if force:
            counts["force_deleted"] = await _force_delete(session, cutoff)
        if abandoned:
            counts["abandoned"] = await _soft_delete_abandoned(session, cutoff)

    if db is not None:
        await _run(db)
    else:
        async with async_session_factory() as session:
            await _run(session)
            await session.commit()

    logger.info(
        "Lead cleanup: %d hard-deleted, %d abandoned soft-deleted (cutoff=%s)",
        counts["force_deleted"], counts["abandoned"], cutoff.date().isoformat(),
    )
    return counts


async def restore_leads(ids: Iterable[int], db: Optional[AsyncSession] = None) -> int:
    """Clear deleted_at on the given soft-deleted leads. Live ids are ignored."""
    ids = [int(i) for i in ids]
    if not ids:
        return 0

    stmt = (
        update(Lead)
        .where(Lead.id.in_(ids), Lead.deleted_at.is_not(None))
        .values(deleted_at=None)
        .execution_options(synchronize_session=False)
    )

    if db is not None:
        result = await db.execute(stmt)
        restored = result.rowcount or 0
    else:
        async with async_session_factory() as session:
            result = await session.execute(stmt)
            restored = result.rowcount or 0
            await session.commit()

    logger.info("Restored %d of %d leads", restored, len(ids))
    return restored


async def run_lead_cleanup():
    """Main loop - apply lead retention once per interval."""
    from leadgate.config import get_settings
    settings = get_settings()
    interval = settings.lead_cleanup_interval_seconds

    logger.info("Lead cleanup worker started (every %ds)", interval)

    while True:
        try:
            await cleanup_cycle(force=True, abandoned=True)
        except Exception as e:
            logger.error("Lead cleanup error: %s", str(e))

        await heartbeat(WORKER_NAME, interval + 3600)
        await asyncio.sleep(interval)
