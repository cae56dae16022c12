"""
Earprint — Async engine and sessions for the key-value table.

``DATABASE_URL`` picks the backend. The default is a local SQLite file via
``aiosqlite``; a bare ``postgresql://`` URL is rewritten to the ``asyncpg``
driver and gets a small connection pool.
"""

from __future__ import annotations

from typing import AsyncGenerator

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from earprint.config import Settings, get_settings

logger = structlog.get_logger("earprint.database")

ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}

SERVER_POOL = dict(pool_size=5, max_overflow=5, pool_timeout=30, pool_recycle=1800, pool_pre_ping=True)


class Base(DeclarativeBase):
    pass


def async_url(raw: str) -> str:
    """Swap a sync driver name for its async counterpart; URLs that already
    name a driver pass through."""
    scheme, sep, rest = raw.partition("://")
    return f"{ASYNC_DRIVERS.get(scheme, scheme)}{sep}{rest}"


def build_engine(settings: Settings) -> AsyncEngine:
    url = make_url(async_url(settings.DATABASE_URL))
    options: dict = {"echo": settings.LOG_LEVEL.upper() == "DEBUG"}
    if url.get_backend_name() != "sqlite":
        options.update(SERVER_POOL)

    logger.info("database.engine", backend=url.get_backend_name(), driver=url.get_driver_name())
    return create_async_engine(url, **options)


engine = build_engine(get_settings())
async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables() -> None:
    import earprint.models  # noqa: F401  registers KeyValueEntry on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commits when the handler returns normally,
    rolls back when it raises."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        else:
            await session.commit()
