"""
db/models/team_member.py

Team member directory. Every imported record is linked to one active member.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TeamMember(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    One person managed by a manager.

    ``external_id`` is the DA ID reliability sheets identify people by;
    productivity sheets identify them by ``name``.
    """

    __tablename__ = "team_members"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    external_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="DA ID",
    )
    worker_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(
        String(320),
        nullable=True,
        comment="Digest recipient address",
    )
    manager_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Owning manager; directory lookups are scoped to it",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Soft-disable a member without deletion",
    )

    __table_args__ = (
        Index("ix_team_members_name", "name"),
        Index("ix_team_members_external_id", "external_id"),
        Index("ix_team_members_manager_active", "manager_id", "is_active"),
    )
