import os

# Settings are read at import time; the module-level engine never connects in tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./unused-test.db")
os.environ.setdefault("INTERNAL_API_SECRET", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CHANGE_BUS", "memory")

import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import date, datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import models  # noqa: F401  (registers tables on Base.metadata)
from apps.workers.notifier import Notifier
from core.db import Base
from core.errors import NotificationDeliveryError
from core.pubsub import InMemoryChangeBus
from models.user import UserProfile


@pytest.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh SQLite database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    yield factory
    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def add_profile(db) -> Callable[..., Awaitable[UserProfile]]:
    """Insert a complete profile; keyword overrides replace the defaults."""

    async def _add(uid: str, **overrides: Any) -> UserProfile:
        fields: dict[str, Any] = {
            "name": uid.title(),
            "date_of_birth": date(2000, 1, 1),
            "age": 25,
            "gender": "female",
            "bio": "",
            "photos": [],
            "interests": [],
            "city": "Berlin",
            "latitude": 52.5200,
            "longitude": 13.4050,
            "looking_for": "everyone",
            "age_min": 18,
            "age_max": 40,
            "distance_radius_km": 50.0,
            "created_at": datetime.utcnow(),
            "last_active": datetime.utcnow(),
            "profile_complete": True,
            "onboarding_completed": True,
        }
        fields.update(overrides)
        profile = UserProfile(uid=uid, **fields)
        db.add(profile)
        await db.commit()
        return profile

    return _add


class RecordingDispatcher:
    """Push dispatcher that records instead of delivering."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[dict[str, Any]] = []

    async def send(self, token: str, title: str, body: str, data: dict[str, Any] | None = None) -> None:
        if self.fail:
            raise NotificationDeliveryError("push service down")
        self.sent.append({"token": token, "title": title, "body": body, "data": data or {}})


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def notifier(dispatcher) -> Notifier:
    return Notifier(dispatcher)


@pytest.fixture
def failing_notifier() -> Notifier:
    return Notifier(RecordingDispatcher(fail=True))


@pytest.fixture
def bus() -> InMemoryChangeBus:
    return InMemoryChangeBus()


class SnapshotRecorder:
    """Feed callback collecting every snapshot it receives."""

    def __init__(self) -> None:
        self.snapshots: asyncio.Queue[list[Any]] = asyncio.Queue()
        self.calls = 0

    async def __call__(self, messages: list[Any]) -> None:
        self.calls += 1
        await self.snapshots.put(messages)

    async def next(self, timeout: float = 2.0) -> list[Any]:
        return await asyncio.wait_for(self.snapshots.get(), timeout)


@pytest.fixture
def recorder() -> SnapshotRecorder:
    return SnapshotRecorder()


@pytest.fixture
def make_recorder() -> Callable[[], SnapshotRecorder]:
    return SnapshotRecorder
