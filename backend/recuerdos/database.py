"""
Recuerdos Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory and transactional scope.
How:   The engine is created lazily on first use from settings.database_url,
       with pool options only for server databases (SQLite uses its own pool).
Who:   SqlRecordStore (sessions), the health check, Alembic (Base.metadata).
When:  Engine on first SQL access; one session per store operation.

Connection Pooling (PostgreSQL):
    pool_size:         persistent connections for normal load
    max_overflow:      temporary connections for spikes
    pool_pre_ping:     validates connections before use (catches stale ones)
    pool_recycle=3600: recycles connections every hour
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from recuerdos.config import settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic uses for autogenerate.
    """
    pass


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None


def engine_options(database_url: str) -> Dict[str, Any]:
    """Keyword arguments for create_async_engine appropriate to the URL's dialect."""
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first call."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))
    return _engine


def get_session_factory() -> async_sessionmaker:
    """
    Session factory bound to the process-wide engine.

    expire_on_commit=False keeps loaded attributes readable after commit,
    which the store relies on when converting rows to Memory objects.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


@asynccontextmanager
async def session_scope(
    factory: Optional[async_sessionmaker] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Transactional scope around one unit of work.

    How it works:
        1. Opens a session from the factory
        2. Yields it to the caller
        3. On success: commits
        4. On error: rolls back and re-raises
        5. Always: closes the session (returns the connection to the pool)

    Example:
        async with session_scope() as session:
            session.add(MemoryRow(...))
    """
    factory = factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all pooled connections.
    When:  Application shutdown (lifespan handler), only if an engine was created.
    """
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
