"""add case-folded material name key

Revision ID: 8c3d2f61a7b0
Revises: 5b1c0e7a9d42
Create Date: 2026-10-18 15:10:00.000000

Adds materials.name_key (name stripped and casefolded), backfills it from the
existing names and puts a unique index on it. Skips any step that
Base.metadata.create_all() already covered.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '8c3d2f61a7b0'
down_revision: Union[str, None] = '5b1c0e7a9d42'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _column_exists(table_name, column_name):
    insp = inspect(op.get_bind())
    return column_name in [c["name"] for c in insp.get_columns(table_name)]


def _index_exists(table_name, index_name):
    insp = inspect(op.get_bind())
    return index_name in [i["name"] for i in insp.get_indexes(table_name)]


def upgrade() -> None:
    if not _column_exists("materials", "name_key"):
        op.add_column("materials", sa.Column("name_key", sa.String(), nullable=True))

    bind = op.get_bind()
    materials = sa.table(
        "materials",
        sa.column("id", sa.String),
        sa.column("name", sa.String),
        sa.column("name_key", sa.String),
    )
    rows = bind.execute(
        sa.select(materials.c.id, materials.c.name).where(materials.c.name_key.is_(None))
    ).fetchall()
    for material_id, name in rows:
        bind.execute(
            materials.update()
            .where(materials.c.id == material_id)
            .values(name_key=(name or "").strip().casefold())
        )

    if not _index_exists("materials", "ix_materials_name_key"):
        op.create_index("ix_materials_name_key", "materials", ["name_key"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_materials_name_key", table_name="materials")
    with op.batch_alter_table("materials") as batch_op:
        batch_op.drop_column("name_key")
