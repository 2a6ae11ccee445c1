"""Database configuration and session management.

This module provides:
- Async SQLAlchemy engine configuration with connection pooling
- Session factory used by the directory and call record store
- Schema creation at startup
"""

import logging
from datetime import datetime, UTC

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from app.config.settings import settings
from app.config.constants import DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def _engine_kwargs(url: str) -> dict:
    # SQLite (dev/test) does not accept pool sizing arguments
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_POOL_MAX_OVERFLOW,
    }


# Create async engine
engine = create_async_engine(
    DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    **_engine_kwargs(DATABASE_URL)
)

# Create async session factory
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Base class for models
Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


async def init_db():
    """Initialize database by creating all tables.

    Creates tables defined in SQLAlchemy models if they don't exist.
    Safe to call multiple times (idempotent operation).
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized successfully")

