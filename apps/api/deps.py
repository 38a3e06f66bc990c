"""FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from apps.engine.feed import MessageFeed
from apps.workers.notifier import Notifier
from apps.workers.notifier import notifier as _notifier
from core.config import settings
from core.db import AsyncSessionLocal
from core.db import get_db as _get_db
from core.pubsub import ChangeBus, InMemoryChangeBus, RedisChangeBus
from core.redis import get_redis as _get_redis

_change_bus: ChangeBus | None = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async for session in _get_db():
        yield session


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for long-lived consumers such as live feeds."""
    return AsyncSessionLocal


async def get_change_bus() -> ChangeBus:
    """Process-wide change bus, backend chosen by settings.change_bus."""
    global _change_bus
    if _change_bus is None:
        if settings.change_bus == "redis":
            _change_bus = RedisChangeBus(await _get_redis())
        else:
            _change_bus = InMemoryChangeBus()
    return _change_bus


def get_notifier() -> Notifier:
    """Get notifier dependency."""
    return _notifier


async def get_message_feed(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    bus: ChangeBus = Depends(get_change_bus),
) -> MessageFeed:
    """Get live message feed dependency."""
    return MessageFeed(session_factory, bus)
