"""
Recuerdos Backend — SQL Record Store
=====================================

What:  RecordStore over the `recuerdos` table with async SQLAlchemy.
How:   One session_scope() per operation; every query is filtered by user_id.
       Rows are converted to `Memory` before leaving this module.
Who:   STORE_BACKEND=sql (default). PostgreSQL via asyncpg in production,
       SQLite via aiosqlite for local development and tests.

Query plans:
    list    SELECT ... WHERE user_id = :owner               (idx_recuerdos_user_fecha)
    get     SELECT ... WHERE id = :id AND user_id = :owner  (PRIMARY KEY)
    search  SELECT ... WHERE user_id = :owner
              AND (titulo ILIKE :pattern OR ubicacion ILIKE :pattern)
            (SQLite: list + Unicode casefold match in Python)

Error translation:
    sqlalchemy.exc.TimeoutError (pool exhausted)        → StoreTimeoutError
    OperationalError / InterfaceError / OSError         → StoreUnavailableError
    any other SQLAlchemyError                           → UnknownError
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import or_, select, text
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from recuerdos import database
from recuerdos.exceptions import (
    NotFoundError,
    StoreTimeoutError,
    StoreUnavailableError,
    UnknownError,
)
from recuerdos.models.memory import MemoryRow
from recuerdos.schemas.memory import Memory, MemoryId
from recuerdos.stores.base import RecordStore, coerce_int_id, matches_term

logger = logging.getLogger(__name__)

# Memory attribute → MemoryRow column
COLUMN_FOR = {
    "owner_id": "user_id",
    "title": "titulo",
    "description": "descripcion",
    "location": "ubicacion",
    "date": "fecha",
    "image_url": "imagen",
    "latitude": "latitud",
    "longitude": "longitud",
    "created_at": "fecha_creacion",
    "updated_at": "fecha_actualizacion",
}


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def row_to_memory(row: MemoryRow) -> Memory:
    data: Dict[str, Any] = {"id": row.id}
    for attribute, column in COLUMN_FOR.items():
        data[attribute] = getattr(row, column)
    data["created_at"] = _aware(data["created_at"])
    data["updated_at"] = _aware(data["updated_at"])
    return Memory.model_validate(data)


def _apply(row: MemoryRow, memory: Memory) -> None:
    for attribute, column in COLUMN_FOR.items():
        value = getattr(memory, attribute)
        if value is None and column in ("fecha_creacion", "fecha_actualizacion"):
            continue
        setattr(row, column, value)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlRecordStore(RecordStore):
    """
    RecordStore backed by a relational database.

    Args:
        engine: Engine to use. Defaults to the process-wide engine built from
            DATABASE_URL; tests pass a SQLite engine of their own.
        create_tables: Run `CREATE TABLE IF NOT EXISTS` on initialize instead
            of relying on Alembic migrations.
    """

    name = "sql"

    def __init__(self, engine: Optional[AsyncEngine] = None, create_tables: bool = False):
        self._engine = engine
        self._create_tables = create_tables
        self._factory: Optional[async_sessionmaker] = None
        if engine is not None:
            self._factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine or database.get_engine()

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        """session_scope() with driver exceptions translated to store errors."""
        try:
            async with database.session_scope(self._factory) as session:
                yield session
        except PoolTimeoutError as e:
            logger.error("Database pool timeout during %s: %s", operation, e)
            raise StoreTimeoutError(context={"operation": operation})
        except (OperationalError, InterfaceError, ConnectionError, OSError) as e:
            logger.error("Database unavailable during %s: %s", operation, e)
            raise StoreUnavailableError(
                context={"operation": operation, "error_type": type(e).__name__}
            )
        except SQLAlchemyError as e:
            logger.error("Database error during %s: %s", operation, e, exc_info=True)
            raise UnknownError(context={"operation": operation, "error_type": type(e).__name__})

    async def _owned_row(self, session: AsyncSession, memory_id: MemoryId, owner_id: str) -> MemoryRow:
        key = coerce_int_id(memory_id)
        result = await session.execute(
            select(MemoryRow).where(MemoryRow.id == key, MemoryRow.user_id == owner_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(resource_id=str(memory_id))
        return row

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        if not self._create_tables:
            return
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(database.Base.metadata.create_all)
        except (OperationalError, InterfaceError, ConnectionError, OSError) as e:
            logger.error("Could not create tables: %s", e)
            raise StoreUnavailableError(context={"operation": "initialize"})
        logger.info("Ensured table %s exists", MemoryRow.__tablename__)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        else:
            await database.dispose_engine()

    # ── RecordStore API ───────────────────────────────────────────────────

    async def list(self, owner_id: str) -> List[Memory]:
        async with self._session("list") as session:
            result = await session.execute(select(MemoryRow).where(MemoryRow.user_id == owner_id))
            return [row_to_memory(row) for row in result.scalars().all()]

    async def get(self, memory_id: MemoryId, owner_id: str) -> Memory:
        async with self._session("get") as session:
            return row_to_memory(await self._owned_row(session, memory_id, owner_id))

    async def create(self, owner_id: str, fields: Dict[str, Any]) -> Memory:
        # id=0 is a placeholder; the database assigns the real one on flush
        draft = Memory.model_validate({**fields, "id": 0, "owner_id": owner_id})
        async with self._session("create") as session:
            row = MemoryRow()
            _apply(row, draft)
            session.add(row)
            await session.flush()
            await session.refresh(row)
            memory = row_to_memory(row)
        logger.info("Memory %s created for owner %s", memory.id, owner_id)
        return memory

    async def update(self, memory_id: MemoryId, owner_id: str, changes: Dict[str, Any]) -> Memory:
        async with self._session("update") as session:
            row = await self._owned_row(session, memory_id, owner_id)
            current = row_to_memory(row)
            updated = Memory.model_validate(
                {**current.model_dump(), **changes, "id": row.id, "owner_id": owner_id}
            )
            _apply(row, updated)
            await session.flush()
            return row_to_memory(row)

    async def delete(self, memory_id: MemoryId, owner_id: str) -> None:
        async with self._session("delete") as session:
            row = await self._owned_row(session, memory_id, owner_id)
            await session.delete(row)
        logger.info("Memory %s deleted for owner %s", memory_id, owner_id)

    async def search(self, owner_id: str, term: str) -> List[Memory]:
        # SQLite's lower() folds ASCII only, so "ÁVILA" would miss "ávila"
        if self.engine.dialect.name == "sqlite":
            return [memory for memory in await self.list(owner_id) if matches_term(memory, term)]

        pattern = _like_pattern(term)
        async with self._session("search") as session:
            result = await session.execute(
                select(MemoryRow).where(
                    MemoryRow.user_id == owner_id,
                    or_(
                        MemoryRow.titulo.ilike(pattern, escape="\\"),
                        MemoryRow.ubicacion.ilike(pattern, escape="\\"),
                    ),
                )
            )
            return [row_to_memory(row) for row in result.scalars().all()]

    async def health_check(self) -> bool:
        try:
            async with self._session("health_check") as session:
                await session.execute(text("SELECT 1"))
            return True
        except (StoreUnavailableError, UnknownError) as e:
            logger.warning("SQL store health check failed: %s", e.message)
            return False
