"""Shared infrastructure: settings, storage access, errors and the Redis connection."""

from core.config import settings
from core.db import AsyncSessionLocal, Base, storage_call
from core.errors import DatingError, NotFoundError, TransientStorageError, ValidationError
from core.redis import close_redis, get_redis

__all__ = [
    "settings",
    "AsyncSessionLocal",
    "Base",
    "storage_call",
    "DatingError",
    "NotFoundError",
    "TransientStorageError",
    "ValidationError",
    "get_redis",
    "close_redis",
]
