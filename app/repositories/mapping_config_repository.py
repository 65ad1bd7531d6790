"""
app/repositories/mapping_config_repository.py

Persistence helpers for saved column mappings.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.mapping_config import MappingConfig


class MappingConfigRepository:
    """
    Repository for CRUD-like operations on saved column mappings.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_active(
        self,
        *,
        record_kind: str,
        name: str | None = None,
        scope_id: str | None = None,
    ) -> MappingConfig | None:
        """
        Resolve one active mapping config by kind and optional name/manager scope.
        """

        stmt = (
            select(MappingConfig)
            .where(MappingConfig.is_active.is_(True))
            .where(MappingConfig.record_kind == record_kind)
        )
        if name:
            stmt = stmt.where(MappingConfig.name == name.strip())
        if scope_id:
            stmt = stmt.where(MappingConfig.scope_id == scope_id.strip())
        stmt = stmt.order_by(MappingConfig.updated_at.desc())
        return self._session.execute(stmt).scalars().first()

    def save(
        self,
        *,
        name: str,
        record_kind: str,
        field_mapping: dict[str, str],
        scope_id: str | None = None,
        alias_overrides: dict[str, list[str]] | None = None,
        notes: str | None = None,
        metadata_json: dict[str, Any] | None = None,
        is_active: bool = True,
    ) -> MappingConfig:
        """
        Insert or update mapping config keyed by (name, record_kind, scope_id).
        """

        normalized_name = name.strip()
        normalized_scope = scope_id.strip() if scope_id else None

        stmt = (
            select(MappingConfig)
            .where(MappingConfig.name == normalized_name)
            .where(MappingConfig.record_kind == record_kind)
        )
        if normalized_scope is None:
            stmt = stmt.where(MappingConfig.scope_id.is_(None))
        else:
            stmt = stmt.where(MappingConfig.scope_id == normalized_scope)
        existing = self._session.execute(stmt).scalars().first()

        if existing is None:
            existing = MappingConfig(
                name=normalized_name,
                record_kind=record_kind,
                scope_id=normalized_scope,
                field_mapping_json=field_mapping,
                alias_overrides_json=alias_overrides,
                notes=notes,
                metadata_json=metadata_json,
                is_active=is_active,
            )
            self._session.add(existing)
        else:
            existing.field_mapping_json = field_mapping
            existing.alias_overrides_json = alias_overrides
            existing.notes = notes
            existing.metadata_json = metadata_json
            existing.is_active = is_active

        try:
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise
        return existing
