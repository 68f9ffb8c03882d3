"""
Database Infrastructure
=======================

Engine and session factory shared by the SLA repositories.

One async engine is created at startup (PostgreSQL through asyncpg in
deployments, SQLite through aiosqlite in the integration tests) and every
repository opens short-lived sessions from the same factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config import settings


class Base(DeclarativeBase):
    """Declarative base for the ticket, holiday, user and notification tables."""


_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None

_NOT_READY = "Database not initialized. Call init_database() first."


def _engine_options(url: str) -> dict:
    options = {"echo": settings.debug, "pool_pre_ping": True}
    # SQLite uses a static pool without size limits
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Build the engine and session factory.

    Args:
        database_url: Overrides ``settings.database_url``; the tests pass
            a SQLite file here.

    Returns:
        AsyncEngine: The engine every session is bound to
    """
    global _engine, _session_maker

    # asyncpg takes ssl=, not the libpq sslmode= parameter
    url = (database_url or settings.database_url).replace("sslmode=", "ssl=")

    _engine = create_async_engine(url, **_engine_options(url))
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory handed to the repositories at startup."""
    if _session_maker is None:
        raise RuntimeError(_NOT_READY)
    return _session_maker


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session that commits when the block exits cleanly.

    Any exception rolls the session back and is re-raised, so seeding code
    and ad-hoc scripts never leave half-written rows behind.
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create the schema from the model metadata (development and tests only)."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_database() -> None:
    """Dispose of pooled connections and forget the engine."""
    global _engine, _session_maker

    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_maker = None
