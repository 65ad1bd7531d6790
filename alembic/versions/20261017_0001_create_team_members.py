"""create team_members table

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "team_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("external_id", sa.String(length=64), nullable=True),
        sa.Column("worker_id", sa.String(length=64), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("manager_id", sa.String(length=64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_team_members_name", "team_members", ["name"], unique=False)
    op.create_index("ix_team_members_external_id", "team_members", ["external_id"], unique=False)
    op.create_index(
        "ix_team_members_manager_active",
        "team_members",
        ["manager_id", "is_active"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_team_members_manager_active", table_name="team_members")
    op.drop_index("ix_team_members_external_id", table_name="team_members")
    op.drop_index("ix_team_members_name", table_name="team_members")
    op.drop_table("team_members")
