import os
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add project root (2 levels up from tests/) to sys.path so tests can import 'app'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

# Must be set before the app's database module is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import fakeredis
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, Pilgrim, User
from app.services.call import CallRecordStore
from app.services.connection import RoomRegistry
from app.services.directory import DirectoryService
from app.services.session import SessionCoordinator
from app.services.status_service import StatusService
from tests.fakes import FakeClock, FakePushDispatcher, FakeSocketServer


@pytest.fixture
async def session_factory():
    """Fresh in-memory SQLite database per test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def accounts(session_factory):
    """Two staff accounts and two pilgrims; only some have push tokens."""
    async with session_factory() as db:
        db.add_all([
            User(id="mod-1", full_name="Moderator One", role="moderator", push_token="tok-mod-1"),
            User(id="admin-1", full_name="Admin One", role="admin"),
            Pilgrim(id="pil-1", full_name="Pilgrim One", push_token="tok-pil-1"),
            Pilgrim(id="pil-2", full_name="Pilgrim Two"),
        ])
        await db.commit()
    return session_factory


@pytest.fixture
async def fake_redis():
    redis = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield redis
    await redis.aclose()


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def sio():
    return FakeSocketServer()


@pytest.fixture
def registry(sio):
    return RoomRegistry(sio)


@pytest.fixture
def push():
    return FakePushDispatcher()


@pytest.fixture
def directory(session_factory):
    return DirectoryService(session_factory)


@pytest.fixture
def call_store(session_factory):
    return CallRecordStore(session_factory)


@pytest.fixture
def status(directory, fake_redis):
    async def _get_fake():
        return fake_redis

    return StatusService(directory, redis_getter=_get_fake)


@pytest.fixture
def coordinator(accounts, registry, directory, status, call_store, push, clock):
    return SessionCoordinator(
        registry=registry,
        directory=directory,
        status_service=status,
        call_store=call_store,
        push=push,
        clock=clock,
    )
