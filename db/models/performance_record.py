"""
db/models/performance_record.py

Imported performance metrics for every record kind.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Boolean, Float, ForeignKey, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class PerformanceRecord(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    One imported metric row.

    Kind-specific fields live in ``metrics_json``; the columns carry what
    duplicate checks and listings filter on. Bulk imports are append-only and
    the period key carries no uniqueness constraint.
    """

    __tablename__ = "performance_records"

    record_kind: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="productivity, reliability",
    )
    person_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("team_members.id", ondelete="CASCADE"),
        nullable=False,
    )
    person_name: Mapped[str] = mapped_column(String(255), nullable=False)
    scope_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Uploading manager",
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    period_label: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="Week N for productivity, period name for reliability",
    )
    period_key: Mapped[str] = mapped_column(String(64), nullable=False)
    primary_metric: Mapped[float] = mapped_column(Float, nullable=False)
    metrics_json: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Normalized canonical fields and derived metrics",
    )
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Batch metadata shared by the upload",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_performance_records_record_kind", "record_kind"),
        Index("ix_performance_records_person_id", "person_id"),
        Index("ix_performance_records_scope_id", "scope_id"),
        Index(
            "ix_performance_records_duplicate_lookup",
            "record_kind",
            "person_id",
            "scope_id",
            "period_key",
        ),
    )
