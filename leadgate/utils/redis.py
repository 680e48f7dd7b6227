"""
Shared Redis connection (lazily initialized).
Used for the geolocation cache, task wake-ups and worker heartbeats.
Callers treat Redis as optional and fail open when it is unavailable.
"""
import logging

logger = logging.getLogger(__name__)

_redis_client = None


async def get_redis():
    """Get or create Redis connection."""
    global _redis_client
    if _redis_client is None:
        import redis.asyncio as aioredis
        from leadgate.config import get_settings
        _redis_client = aioredis.from_url(
            get_settings().redis_url,
            decode_responses=True,
        )
    return _redis_client


async def heartbeat(worker_name: str, ttl_seconds: int) -> None:
    """Store a worker heartbeat timestamp. Never raises."""
    from datetime import datetime, timezone
    try:
        redis = await get_redis()
        await redis.set(
            f"leadgate:worker_health:{worker_name}",
            datetime.now(timezone.utc).isoformat(),
            ex=ttl_seconds,
        )
    except Exception as e:
        logger.debug("Heartbeat for %s failed: %s", worker_name, str(e))
