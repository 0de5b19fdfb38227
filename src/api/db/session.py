from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from api.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _engine_options(settings: Settings) -> dict[str, Any]:
    if not settings.is_postgres:
        # Wait on a locked SQLite file about as long as a season lock would.
        return {"connect_args": {"timeout": max(settings.season_lock_timeout_s, 1.0)}}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout_s,
        "pool_recycle": settings.db_pool_recycle_s,
        # Naive timestamps are read and written as UTC.
        "connect_args": {"server_settings": {"timezone": settings.db_timezone}},
    }


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    settings: Settings = get_settings()
    return create_async_engine(
        settings.sqlalchemy_database_url,
        echo=settings.db_echo,
        **_engine_options(settings),
    )


@lru_cache(maxsize=1)
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db() -> None:
    """Create the rating tables for local bootstrap; production uses alembic."""
    from api.db import models as _models

    del _models
    async with get_engine().begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)
    logger.info("db_initialized", extra={"tables": len(SQLModel.metadata.tables)})


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a transactional async session."""
    async with get_sessionmaker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """FastAPI dependency for background jobs that outlive the request session."""
    return get_sessionmaker()
