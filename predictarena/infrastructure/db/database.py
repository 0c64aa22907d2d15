"""
Database Configuration
Async SQLAlchemy engine and sessions on PostgreSQL (asyncpg) or SQLite (aiosqlite)
"""

import logging
import os
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from predictarena.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base of every table"""
    pass


def _async_url(url: str) -> str:
    """Map sync-style URLs onto their async drivers"""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


DATABASE_URL = _async_url(settings.DATABASE_URL)

# Migrations build their own engine; importing models must not open a pool
ALEMBIC_MODE = os.getenv("ALEMBIC_MODE") == "1"


def _sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine(url: str = DATABASE_URL) -> AsyncEngine:
    if url.startswith("sqlite"):
        sqlite_engine = create_async_engine(url, echo=settings.DEBUG)
        event.listen(sqlite_engine.sync_engine, "connect", _sqlite_foreign_keys)
        return sqlite_engine

    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


if not ALEMBIC_MODE:
    engine = create_engine()
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
else:
    engine = None
    async_session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session; commits on success, rolls back on error.

    async def route(db: AsyncSession = Depends(get_db))
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """Create missing tables when AUTO_CREATE_TABLES is on; Alembic owns the schema otherwise"""
    if not settings.AUTO_CREATE_TABLES:
        return

    from predictarena.infrastructure.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_db():
    await engine.dispose()
