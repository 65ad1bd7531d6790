"""create performance_records table

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 09:05:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "performance_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("record_kind", sa.String(length=32), nullable=False),
        sa.Column("person_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("person_name", sa.String(length=255), nullable=False),
        sa.Column("scope_id", sa.String(length=64), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("period_label", sa.String(length=32), nullable=False),
        sa.Column("period_key", sa.String(length=64), nullable=False),
        sa.Column("primary_metric", sa.Float(), nullable=False),
        sa.Column("metrics_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["person_id"], ["team_members.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_performance_records_record_kind", "performance_records", ["record_kind"], unique=False)
    op.create_index("ix_performance_records_person_id", "performance_records", ["person_id"], unique=False)
    op.create_index("ix_performance_records_scope_id", "performance_records", ["scope_id"], unique=False)
    op.create_index(
        "ix_performance_records_duplicate_lookup",
        "performance_records",
        ["record_kind", "person_id", "scope_id", "period_key"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_performance_records_duplicate_lookup", table_name="performance_records")
    op.drop_index("ix_performance_records_scope_id", table_name="performance_records")
    op.drop_index("ix_performance_records_person_id", table_name="performance_records")
    op.drop_index("ix_performance_records_record_kind", table_name="performance_records")
    op.drop_table("performance_records")
