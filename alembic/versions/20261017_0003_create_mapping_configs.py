"""create mapping_configs table

Revision ID: 20261017_0003
Revises: 20261017_0002
Create Date: 2026-10-17 09:10:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0003"
down_revision = "20261017_0002"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "mapping_configs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("record_kind", sa.String(length=32), nullable=False),
        sa.Column("scope_id", sa.String(length=64), nullable=True),
        sa.Column("field_mapping_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("alias_overrides_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", "record_kind", "scope_id", name="uq_mapping_configs_name_kind_scope"),
    )
    op.create_index("ix_mapping_configs_record_kind", "mapping_configs", ["record_kind"], unique=False)
    op.create_index(
        "ix_mapping_configs_scope_kind_active",
        "mapping_configs",
        ["scope_id", "record_kind", "is_active"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_mapping_configs_scope_kind_active", table_name="mapping_configs")
    op.drop_index("ix_mapping_configs_record_kind", table_name="mapping_configs")
    op.drop_table("mapping_configs")
