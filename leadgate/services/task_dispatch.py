"""
Task dispatch service - enqueue tasks for the integration workers.
Central helper for creating tasks in the task queue.

Also pushes a notification to Redis so a worker can wake
immediately via BRPOP instead of polling.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from leadgate.database import async_session_factory
from leadgate.models.task_queue import TaskQueue, TASK_INTEGRATION_DISPATCH

logger = logging.getLogger(__name__)

TASK_NOTIFY_KEY = "leadgate:task_notify"


async def enqueue_task(
    task_type: str,
    payload: Optional[dict] = None,
    priority: int = 5,
    delay_seconds: int = 0,
    max_retries: int = 3,
    db: Optional[AsyncSession] = None,
) -> str:
    """
    Enqueue a task for background processing.

    Args:
        task_type: Type of task (integration_dispatch)
        payload: Task-specific data as JSON-serializable dict
        priority: 0=low, 5=normal, 10=high
        delay_seconds: Delay before task becomes eligible for processing
        max_retries: Maximum retry attempts on failure
        db: Join the caller's transaction instead of committing a new one

    Returns:
        Task ID as string
    """
    scheduled_at = datetime.now(timezone.utc)
    if delay_seconds > 0:
        scheduled_at = scheduled_at + timedelta(seconds=delay_seconds)

    task = TaskQueue(
        task_type=task_type,
        payload=payload or {},
        priority=priority,
        max_retries=max_retries,
        scheduled_at=scheduled_at,
    )

    if db is not None:
        db.add(task)
        await db.flush()
        task_id = str(task.id)
    else:
        async with async_session_factory() as session:
            session.add(task)
            await session.commit()
            task_id = str(task.id)

    logger.info(
        "Task enqueued: type=%s priority=%d delay=%ds id=%s",
        task_type, priority, delay_seconds, task_id[:8],
    )

    # Wake a worker immediately (non-blocking, best-effort)
    if delay_seconds == 0:
        try:
            from leadgate.utils.redis import get_redis
            redis = await get_redis()
            await redis.lpush(TASK_NOTIFY_KEY, task_id)
        except Exception as e:
            logger.debug("Failed to notify task workers: %s", str(e))

    return task_id


async def dispatch_lead(
    db: Optional[AsyncSession],
    lead_id: int,
    integrations: Optional[list[str]] = None,
    credentials: Optional[dict] = None,
    priority: int = 5,
) -> str:
    """Queue a lead for delivery to its integrations. None means every configured one."""
    payload: dict = {"lead_id": lead_id}
    if integrations:
        payload["integrations"] = list(integrations)
    if credentials:
        payload["credentials"] = credentials

    return await enqueue_task(
        TASK_INTEGRATION_DISPATCH,
        payload=payload,
        priority=priority,
        db=db,
    )
