"""Create recuerdos table

Revision ID: 001
Revises: None
Create Date: 2024-06-15 00:00:00.000000+00:00

What:  Creates the `recuerdos` table used by SqlRecordStore.
How:   Integer identity key (AUTOINCREMENT on SQLite, a sequence on
       PostgreSQL) so deleted ids are never handed out again; `fecha` is a
       DATE column; timestamps are TIMESTAMP WITH TIME ZONE.

Rollback: downgrade() drops the table and every memory in it.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "recuerdos",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False, comment="Owner; every query filters on it"),
        sa.Column("titulo", sa.String(255), nullable=False),
        sa.Column("descripcion", sa.Text(), nullable=True),
        sa.Column("ubicacion", sa.String(500), nullable=False, comment="Free-text place name"),
        sa.Column("fecha", sa.Date(), nullable=False, comment="Calendar date, no time or timezone"),
        sa.Column("imagen", sa.String(2048), nullable=True, comment="URL of a pre-uploaded photo"),
        sa.Column("latitud", sa.Float(), nullable=True),
        sa.Column("longitud", sa.Float(), nullable=True),
        sa.Column(
            "fecha_creacion",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "fecha_actualizacion",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_recuerdos"),
        sa.CheckConstraint(
            "(latitud IS NULL) = (longitud IS NULL)",
            name="ck_recuerdos_coordinates_pair",
        ),
        sqlite_autoincrement=True,
    )

    op.create_index("idx_recuerdos_user_fecha", "recuerdos", ["user_id", "fecha"])


def downgrade() -> None:
    op.drop_index("idx_recuerdos_user_fecha", table_name="recuerdos")
    op.drop_table("recuerdos")
