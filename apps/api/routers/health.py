"""Liveness and dependency checks."""

import asyncio

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from apps.api.deps import get_db
from core.config import settings
from core.redis import get_redis

router = APIRouter()


@router.get("")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "environment": settings.environment}


@router.get("/db")
async def health_check_db(db: AsyncSession = Depends(get_db)) -> dict[str, str]:
    """Round-trip a trivial query within the storage timeout."""
    try:
        await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=settings.storage_timeout_seconds)
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "database": "disconnected", "error": str(e)}


@router.get("/bus")
async def health_check_bus() -> dict[str, str]:
    """Change bus check. Only the Redis backend has anything to ping."""
    if settings.change_bus != "redis":
        return {"status": "healthy", "bus": settings.change_bus}
    try:
        client = await get_redis()
        await client.ping()
        return {"status": "healthy", "bus": "redis"}
    except Exception as e:
        return {"status": "unhealthy", "bus": "redis", "error": str(e)}
