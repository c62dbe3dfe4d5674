"""
Engine and session lifecycle.

The engine is created on first use so that importing the app (and the test
suite, which never opens a connection) does not need a reachable database.
"""
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from crowdfund.config import get_settings
from crowdfund.database.models import Base

logger = structlog.get_logger(__name__)

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it and its session factory on first call."""
    global _engine, _async_session_factory
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        # expire_on_commit stays off: response schemas read attributes after commit
        _async_session_factory = async_sessionmaker(
            _engine, expire_on_commit=False, autoflush=False
        )
        logger.info(
            "database_engine_created",
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    get_engine()
    assert _async_session_factory is not None
    return _async_session_factory


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Open a session whose work is committed on exit or rolled back on error.

    Repositories only flush; this is where the single commit happens.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, Any]:
    """
    FastAPI dependency: one session and one database transaction per request.

    FastAPI caches the dependency within a request, so every repository a
    route uses shares this session. A domain error raised by a service rolls
    back everything the request wrote, including pending transactions whose
    payment URL could not be obtained.
    """
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """Create missing tables. Alembic owns schema changes; this only bootstraps."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("database_engine_disposed")
