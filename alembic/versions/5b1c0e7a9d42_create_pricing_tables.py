"""create catalog and product pricing tables

Revision ID: 5b1c0e7a9d42
Revises:
Create Date: 2026-10-18 09:40:00.000000

Creates the materials catalog, products, and the three cost-row tables.
Skips any table that Base.metadata.create_all() already made.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '5b1c0e7a9d42'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("materials"):
        op.create_table(
            "materials",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("sku", sa.String(), nullable=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("supplier", sa.String(), nullable=True),
            sa.Column("total_cost", sa.Float(), nullable=True),
            sa.Column("qty", sa.Float(), nullable=True),
            sa.Column("unit_of_measurement", sa.String(), nullable=True),
            sa.Column("unit_price", sa.Float(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_materials_name", "materials", ["name"])

    if not _table_exists("products"):
        op.create_table(
            "products",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("product_name", sa.String(), nullable=True),
            sa.Column("hourly_labor_rate", sa.Float(), nullable=True),
            sa.Column("calculation_mode", sa.Enum("MARGIN", "PRICE", name="calculationmode"), nullable=True),
            sa.Column("target_margin", sa.Float(), nullable=True),
            sa.Column("target_price", sa.Float(), nullable=True),
            sa.Column("discount", sa.Float(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )
        op.create_index("ix_products_id", "products", ["id"])

    if not _table_exists("product_material_rows"):
        op.create_table(
            "product_material_rows",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
            sa.Column("purpose", sa.Enum("MATERIALS", "PACKAGING", name="rowpurpose"), nullable=False),
            sa.Column("material_id", sa.String(), nullable=True),
            sa.Column("qty", sa.Float(), nullable=True),
            sa.Column("position", sa.Integer(), nullable=True),
        )

    if not _table_exists("product_labor_rows"):
        op.create_table(
            "product_labor_rows",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
            sa.Column("task_name", sa.String(), nullable=True),
            sa.Column("hours", sa.Float(), nullable=True),
            sa.Column("position", sa.Integer(), nullable=True),
        )

    if not _table_exists("product_fee_rows"):
        op.create_table(
            "product_fee_rows",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
            sa.Column("fee_name", sa.String(), nullable=True),
            sa.Column("qty", sa.Float(), nullable=True),
            sa.Column("unit", sa.String(), nullable=True),
            sa.Column("unit_price", sa.Float(), nullable=True),
            sa.Column("position", sa.Integer(), nullable=True),
        )


def downgrade() -> None:
    op.drop_table("product_fee_rows")
    op.drop_table("product_labor_rows")
    op.drop_table("product_material_rows")
    op.drop_index("ix_products_id", table_name="products")
    op.drop_table("products")
    op.drop_index("ix_materials_name", table_name="materials")
    op.drop_table("materials")
