import asyncio
import functools
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any, ParamSpec, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import settings
from core.errors import TransientStorageError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def _engine_options(url: str) -> dict[str, Any]:
    """Pool options; SQLite (tests, local runs) does not take a sized pool."""
    options: dict[str, Any] = {"echo": settings.is_development, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    return options


# Create async engine
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def storage_call(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
    """
    Bound a storage-backed operation with the configured timeout.

    Timeouts and connection-level database failures are re-raised as
    TransientStorageError so callers can tell them apart from NotFound and
    validation failures. Integrity errors and domain errors pass through.
    """

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
        try:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=settings.storage_timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.warning(f"Storage call {func.__qualname__} timed out after {settings.storage_timeout_seconds}s")
            raise TransientStorageError(f"{func.__qualname__} timed out") from e
        except (OperationalError, InterfaceError) as e:
            logger.warning(f"Storage call {func.__qualname__} failed: {e}")
            raise TransientStorageError(f"{func.__qualname__} failed: storage unavailable") from e
        except DBAPIError as e:
            if e.connection_invalidated:
                logger.warning(f"Storage connection lost during {func.__qualname__}: {e}")
                raise TransientStorageError(f"{func.__qualname__} failed: connection lost") from e
            raise

    return wrapper
