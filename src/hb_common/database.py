"""Engine/session construction and the unit-of-work helper.

Nothing here is created at import time: main.py builds the engine in the
lifespan and tests build their own against SQLite.
"""

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Request
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import Settings
from src.hb_common.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models across modules."""

    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    session_factory = request.app.state.container.session_factory
    async with session_factory() as session:
        yield session


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error.

    Connection-level failures surface as StorageUnavailableError so callers
    can retry them; business errors propagate unchanged.
    """
    try:
        yield db
        await db.commit()
    except (OperationalError, InterfaceError) as exc:
        await _safe_rollback(db)
        raise StorageUnavailableError(str(exc.orig or exc)) from exc
    except BaseException:
        await _safe_rollback(db)
        raise


async def _safe_rollback(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except (OperationalError, InterfaceError):
        # Connection already gone; the server discards the transaction.
        logger.warning("Rollback failed on a dead connection", exc_info=True)
