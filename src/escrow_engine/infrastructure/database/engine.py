"""Async database engine and session management.

Provides:
    - get_session_factory: A sessionmaker bound to the configured engine.
    - init_db / close_db: Lifecycle hooks for FastAPI's lifespan.
    - create_engine_for_url: Engine construction shared with tests and the
      simulation (SQLite in-memory needs a static pool).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from escrow_engine.config import get_settings
from escrow_engine.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = get_logger(__name__)

# Module-level singletons (initialized in init_db)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """Build an async engine, applying pool settings that fit the backend."""
    if url.startswith("sqlite"):
        if ":memory:" in url:
            return create_async_engine(url, echo=echo, poolclass=StaticPool)
        return create_async_engine(url, echo=echo)

    settings = get_settings()
    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
        echo=echo,
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get or create the async engine (lazy singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine_for_url(settings.database_url, echo=settings.db_echo_sql)
        logger.info("database.engine_created", sqlite=settings.is_sqlite)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


async def create_tables(engine: AsyncEngine) -> None:
    from escrow_engine.infrastructure.database.orm_models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """Initialize the database engine and create tables if they don't exist.

    Called during FastAPI's lifespan startup. Tables are only created
    automatically in development.
    """
    engine = get_engine()
    settings = get_settings()

    if settings.is_development:
        await create_tables(engine)
        logger.info("database.tables_created")
    else:
        logger.info("database.skipping_create_all", reason="not in development mode")


async def close_db() -> None:
    """Dispose of the database engine. Called during FastAPI's lifespan shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
