"""
Recuerdos Backend — Memory SQLAlchemy Model
============================================

What:  ORM model for the `recuerdos` table used by SqlRecordStore.
How:   Inherits from the shared DeclarativeBase; Alembic reads it for migrations.
Who:   Used only by stores/sql_store.py. Everything above the store sees `Memory`.

Table Design:
    - Integer identity primary key. SQLite gets AUTOINCREMENT and PostgreSQL a
      sequence, so a deleted id is never handed out again.
    - Column names follow the storage-layer naming (`user_id`, `fecha_creacion`,
      ...); translation to the API naming happens in SqlRecordStore.
    - `fecha` is a DATE column: no time component, no timezone.
    - Composite index (user_id, fecha) serves the default listing order.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import Date, DateTime, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from recuerdos.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryRow(Base):
    """One memory ("recuerdo") row, scoped to its owner by `user_id`."""

    __tablename__ = "recuerdos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    titulo: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ubicacion: Mapped[str] = mapped_column(String(500), nullable=False)
    fecha: Mapped[date] = mapped_column(Date, nullable=False)

    # URL only; image bytes live with the external image host
    imagen: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)

    latitud: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitud: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    fecha_creacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    fecha_actualizacion: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_recuerdos_user_fecha", "user_id", "fecha"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<MemoryRow(id={self.id}, user_id='{self.user_id}', fecha='{self.fecha}')>"
