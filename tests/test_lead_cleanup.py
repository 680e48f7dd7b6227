"""
Tests for leadgate/workers/lead_cleanup.py and the maintenance scripts.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select

from leadgate.models.lead import Lead
from leadgate.workers.lead_cleanup import (
    cleanup_cycle,
    restore_leads,
    run_lead_cleanup,
    years_ago,
)

THREE_YEARS = timedelta(days=3 * 365)


async def _ids(db):
    return sorted((await db.execute(select(Lead.id))).scalars().all())


class TestYearsAgo:
    def test_plain_date(self):
        now = datetime(2026, 6, 15, tzinfo=timezone.utc)
        assert years_ago(2, now) == datetime(2024, 6, 15, tzinfo=timezone.utc)

    def test_leap_day(self):
        now = datetime(2028, 2, 29, tzinfo=timezone.utc)
        assert years_ago(1, now) == datetime(2027, 2, 28, tzinfo=timezone.utc)


class TestCleanupCycle:
    async def test_force_hard_deletes_old_soft_deleted(self, db, make_lead):
        old_deleted = await make_lead(deleted_at=datetime.now(timezone.utc) - THREE_YEARS)
        recent_deleted = await make_lead(deleted_at=datetime.now(timezone.utc) - timedelta(days=30))
        live = await make_lead()

        counts = await cleanup_cycle(force=True, retention_years=2, db=db)

        assert counts == {"force_deleted": 1, "abandoned": 0}
        db.expunge_all()
        assert await _ids(db) == sorted([recent_deleted.id, live.id])
        assert old_deleted.id not in await _ids(db)

    async def test_abandoned_soft_deletes_stale_live_leads(self, db, make_lead):
        stale_time = datetime.now(timezone.utc) - THREE_YEARS
        stale = await make_lead(created_at=stale_time, updated_at=stale_time)
        fresh = await make_lead()

        counts = await cleanup_cycle(abandoned=True, retention_years=2, db=db)

        assert counts["abandoned"] == 1
        db.expunge_all()
        stale_row = await db.get(Lead, stale.id)
        fresh_row = await db.get(Lead, fresh.id)
        assert stale_row.deleted_at is not None
        assert fresh_row.deleted_at is None

    async def test_no_options_touch_nothing(self, db, make_lead):
        await make_lead(deleted_at=datetime.now(timezone.utc) - THREE_YEARS)

        counts = await cleanup_cycle(retention_years=2, db=db)

        assert counts == {"force_deleted": 0, "abandoned": 0}
        assert len(await _ids(db)) == 1


class TestRestoreLeads:
    async def test_restores_only_soft_deleted(self, db, make_lead):
        deleted = await make_lead(deleted_at=datetime.now(timezone.utc))
        live = await make_lead()

        restored = await restore_leads([deleted.id, live.id, 999], db=db)

        assert restored == 1
        db.expunge_all()
        assert (await db.get(Lead, deleted.id)).deleted_at is None

    async def test_empty_ids(self, db):
        assert await restore_leads([], db=db) == 0


class TestRunLoop:
    async def test_cycle_error_still_heartbeats(self, mock_redis):
        with (
            patch("leadgate.workers.lead_cleanup.cleanup_cycle", AsyncMock(side_effect=RuntimeError("db down"))),
            patch("leadgate.workers.lead_cleanup.asyncio.sleep", AsyncMock(side_effect=asyncio.CancelledError)),
        ):
            with pytest.raises(asyncio.CancelledError):
                await run_lead_cleanup()

        args, _ = mock_redis.set.call_args
        assert args[0] == "leadgate:worker_health:lead_cleanup"


class TestScripts:
    def test_cleanup_requires_an_option(self):
        from scripts.cleanup_leads import main
        assert main([]) == 1

    def test_cleanup_runs_cycle(self):
        with patch("scripts.cleanup_leads.cleanup_cycle", AsyncMock(return_value={"force_deleted": 2, "abandoned": 0})) as mock_cycle:
            from scripts.cleanup_leads import main
            assert main(["--force", "--years", "3"]) == 0

        mock_cycle.assert_awaited_once_with(force=True, abandoned=False, retention_years=3)

    def test_restore_passes_ids(self):
        with patch("scripts.restore_leads.restore_leads", AsyncMock(return_value=2)) as mock_restore:
            from scripts.restore_leads import main
            assert main(["5", "6"]) == 0

        mock_restore.assert_awaited_once_with([5, 6])

    def test_restore_failure_exit_code(self):
        with patch("scripts.restore_leads.restore_leads", AsyncMock(side_effect=RuntimeError("db down"))):
            from scripts.restore_leads import main
            assert main(["5"]) == 1
