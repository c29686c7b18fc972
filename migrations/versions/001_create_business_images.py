"""Create business_images table

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "business_images",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("business_id", sa.String(length=64), nullable=False),
        sa.Column("url", sa.String(length=1000), nullable=False),
        sa.Column("alt_text", sa.Text(), nullable=True),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("primary_since", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_business_images_business_id", "business_images", ["business_id"], unique=False)
    op.create_index(
        "ix_business_images_business_sort",
        "business_images",
        ["business_id", "sort_order"],
        unique=False,
    )
    # At most one logo per business
    op.create_index(
        "uq_business_images_primary",
        "business_images",
        ["business_id"],
        unique=True,
        postgresql_where=sa.text("is_primary"),
    )


def downgrade() -> None:
    op.drop_index("uq_business_images_primary", table_name="business_images")
    op.drop_index("ix_business_images_business_sort", table_name="business_images")
    op.drop_index("ix_business_images_business_id", table_name="business_images")
    op.drop_table("business_images")
