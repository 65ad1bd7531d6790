"""
db/models/mapping_config.py

Saved column mappings, per manager and record kind.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class MappingConfig(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "mapping_configs"

    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="Human-readable config name",
    )
    record_kind: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="productivity, reliability",
    )
    scope_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Owning manager; null for shared mappings",
    )
    field_mapping_json: Mapped[dict[str, str]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Canonical field -> source column overrides",
    )
    alias_overrides_json: Mapped[dict[str, list[str]] | None] = mapped_column(
        JSONB,
        nullable=True,
        comment="Extra header keywords per canonical field",
    )
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "name",
            "record_kind",
            "scope_id",
            name="uq_mapping_configs_name_kind_scope",
        ),
        Index("ix_mapping_configs_record_kind", "record_kind"),
        Index("ix_mapping_configs_scope_kind_active", "scope_id", "record_kind", "is_active"),
    )
