"""
app/mappers/row_resolver.py

Turns one raw spreadsheet row into either a CanonicalRow or a RowError.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from app.domain.ingestion import BatchMetadata, CanonicalRow, PersonLink, RowError, RowErrorCode
from app.domain.interfaces import PersonDirectory, PersonLookupField
from app.domain.record_kinds import NUMERIC_FIELD_CLASSES, FieldClass, RecordKind
from app.mappers.column_resolver import ColumnResolver, MappingResolution
from app.normalizers.field_normalizers import (
    cell_text,
    is_blank,
    normalize_count,
    normalize_identifier,
    normalize_month,
    normalize_percentage,
    normalize_period_label,
    parse_number,
)
from app.validators.record_validator import RecordValidator

logger = logging.getLogger(__name__)


def normalize_field(field_class: str, value: Any) -> Any:
    """
    Apply the normalizer matching ``field_class`` to one cell.
    """

    if field_class == FieldClass.MONTH:
        return normalize_month(value)
    if field_class == FieldClass.PERIOD_LABEL:
        return normalize_period_label(value)
    if field_class == FieldClass.PERCENTAGE:
        return normalize_percentage(value)
    if field_class == FieldClass.COUNT:
        return normalize_count(value)
    if is_blank(value):
        return None
    return normalize_identifier(value)


class RowResolver:
    """
    Resolves, normalizes and validates one row at a time.
    """

    def __init__(self, *, column_resolver: ColumnResolver | None = None) -> None:
        self._column_resolver = column_resolver or ColumnResolver()

    def resolve(
        self,
        *,
        kind: RecordKind,
        raw_row: Mapping[str, Any],
        mapping: MappingResolution,
        metadata: BatchMetadata,
        index: int,
        directory: PersonDirectory,
    ) -> tuple[CanonicalRow | None, RowError | None]:
        """
        Return exactly one of a CanonicalRow or a RowError.
        """

        record = dict(raw_row)
        raw_fields = self._column_resolver.map_row(raw_row=raw_row, mapping=mapping)

        for name in kind.required_fields:
            value = raw_fields.get(name)
            if is_blank(value):
                return None, RowError(
                    index=index,
                    record=record,
                    error=f"{kind.label(name)} is required.",
                    code=RowErrorCode.REQUIRED_FIELD_MISSING,
                    field=name,
                )
            if kind.field_class(name) in NUMERIC_FIELD_CLASSES and parse_number(value) is None:
                return None, RowError(
                    index=index,
                    record=record,
                    error=f"{kind.label(name)} must be a number (got {cell_text(value)!r}).",
                    code=RowErrorCode.INVALID_NUMBER,
                    field=name,
                )

        fields: dict[str, Any] = {
            name: normalize_field(kind.field_class(name), raw_fields.get(name))
            for name in kind.canonical_fields
        }
        fields.update(self._metadata_fields(kind, metadata))

        identifier = fields[kind.person_field]
        person = directory.lookup(
            identifier,
            by=kind.person_lookup,
            scope_id=metadata.scope_id,
            active_only=True,
        )
        if person is None:
            return None, RowError(
                index=index,
                record=record,
                error=f"Team member not found: {identifier}.",
                code=RowErrorCode.PERSON_NOT_FOUND,
                field=kind.person_field,
            )
        fields[kind.person_field] = self._canonical_identifier(kind, person, identifier)

        validated, errors = RecordValidator(kind).validate(fields=fields, index=index, record=record)
        if errors or validated is None:
            first = errors[0]
            return None, RowError(
                index=index,
                record=record,
                error="; ".join(error.error for error in errors),
                code=first.code,
                field=first.field,
            )

        period_key = kind.period_key(validated, metadata)
        if period_key is None:
            return None, RowError(
                index=index,
                record=record,
                error="Reporting period could not be determined.",
                code=RowErrorCode.INVALID_VALUE,
                field=kind.period_label_field or "period",
            )

        validated.update(kind.derived_metrics(validated))
        return (
            CanonicalRow(
                index=index,
                kind=kind.name,
                fields=validated,
                person=person,
                period_key=period_key,
                scope_id=metadata.scope_id,
            ),
            None,
        )

    @staticmethod
    def _metadata_fields(kind: RecordKind, metadata: BatchMetadata) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name in kind.metadata_fields:
            value = metadata.value(name)
            if name == "period" and is_blank(value):
                value = kind.default_period_label
            elif isinstance(value, str):
                value = normalize_identifier(value) or None
            values[name] = value
        return values

    @staticmethod
    def _canonical_identifier(kind: RecordKind, person: PersonLink, identifier: str) -> str:
        if kind.person_lookup == PersonLookupField.NAME:
            return person.display_name
        return person.external_id or identifier
