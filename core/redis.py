"""Shared Redis connection, used by the change bus when CHANGE_BUS=redis."""

import logging

import redis.asyncio as redis

from core.config import settings

logger = logging.getLogger(__name__)

_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    """Lazily create the client; pub/sub payloads come back decoded to str."""
    global _client
    if _client is None:
        _client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30,
        )
        logger.info("Created Redis client for the change bus")
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None
