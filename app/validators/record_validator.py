"""
app/validators/record_validator.py

Domain validation for normalized canonical rows.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from app.domain.ingestion import BatchMetadata, RowError, RowErrorCode
from app.domain.record_kinds import MAX_YEAR, MIN_YEAR, FieldClass, RecordKind
from app.normalizers.field_normalizers import MAX_WEEK, MIN_WEEK, MONTH_NAMES, cell_text, is_blank, week_number


class RecordValidator:
    """
    Validates one normalized row against the rules of its record kind.

    Returns ``(fields, errors)``; ``fields`` carries count fields converted to
    ``int`` and is None whenever any rule fails.
    """

    def __init__(self, kind: RecordKind) -> None:
        self._kind = kind

    @staticmethod
    def is_completely_empty_row(row: Mapping[str, Any] | list[Any] | tuple[Any, ...]) -> bool:
        """
        Return True when all values in the row are empty or whitespace.
        """

        values = row.values() if isinstance(row, Mapping) else row
        return all(is_blank(value) for value in values)

    def validate(
        self,
        *,
        fields: Mapping[str, Any],
        index: int,
        record: Mapping[str, Any],
    ) -> tuple[dict[str, Any] | None, list[RowError]]:
        kind = self._kind
        errors: list[RowError] = []
        validated = dict(fields)

        for name in (*kind.required_fields, *kind.required_metadata):
            if is_blank(fields.get(name)):
                errors.append(
                    self._error(
                        index=index,
                        record=record,
                        code=RowErrorCode.REQUIRED_FIELD_MISSING,
                        field=name,
                        message=f"{kind.label(name)} is required.",
                    )
                )

        for name in kind.fields_of(FieldClass.MONTH):
            value = fields.get(name)
            if not is_blank(value) and value not in MONTH_NAMES:
                errors.append(
                    self._error(
                        index=index,
                        record=record,
                        code=RowErrorCode.INVALID_VALUE,
                        field=name,
                        message=f"Invalid month: {cell_text(value)}.",
                    )
                )

        for name in kind.fields_of(FieldClass.PERIOD_LABEL):
            value = fields.get(name)
            if is_blank(value):
                continue
            week = week_number(value)
            if week is None or not MIN_WEEK <= week <= MAX_WEEK:
                errors.append(
                    self._error(
                        index=index,
                        record=record,
                        code=RowErrorCode.INVALID_VALUE,
                        field=name,
                        message=f"Invalid week: {cell_text(value)}. Expected Week {MIN_WEEK} to Week {MAX_WEEK}.",
                    )
                )

        if "year" in kind.metadata_fields:
            self._check_year(fields.get("year"), index=index, record=record, errors=errors)

        if "month" in kind.metadata_fields:
            self._check_metadata_month(fields.get("month"), index=index, record=record, errors=errors)

        for name in kind.count_fields:
            value = fields.get(name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                continue
            if not float(value).is_integer():
                errors.append(
                    self._error(
                        index=index,
                        record=record,
                        code=RowErrorCode.INVALID_VALUE,
                        field=name,
                        message=f"{kind.label(name)} must be a whole number (got {value:g}).",
                    )
                )
                continue
            validated[name] = int(value)

        for name, numeric_range in kind.ranges.items():
            value = fields.get(name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                continue
            if not numeric_range.contains(float(value)):
                errors.append(
                    self._error(
                        index=index,
                        record=record,
                        code=RowErrorCode.OUT_OF_RANGE,
                        field=name,
                        message=f"{kind.label(name)} must be {numeric_range.describe()} (got {value:g}).",
                    )
                )

        for name, pattern in kind.patterns.items():
            value = fields.get(name)
            if is_blank(value):
                continue
            if re.fullmatch(pattern, cell_text(value)) is None:
                errors.append(
                    self._error(
                        index=index,
                        record=record,
                        code=RowErrorCode.INVALID_VALUE,
                        field=name,
                        message=f"Invalid {kind.label(name)}: {cell_text(value)}.",
                    )
                )

        if errors:
            return None, errors
        return validated, []

    def validate_metadata(self, metadata: BatchMetadata) -> list[RowError]:
        """
        Check batch-level metadata once, before any row is processed.
        """

        fields = {name: metadata.value(name) for name in self._kind.metadata_fields}
        errors: list[RowError] = []
        for name in self._kind.required_metadata:
            if is_blank(fields.get(name)):
                errors.append(
                    self._error(
                        index=-1,
                        record=fields,
                        code=RowErrorCode.REQUIRED_FIELD_MISSING,
                        field=name,
                        message=f"{self._kind.label(name)} is required.",
                    )
                )
        if "year" in fields and not is_blank(fields["year"]):
            self._check_year(fields["year"], index=-1, record=fields, errors=errors)
        if "month" in fields and not is_blank(fields["month"]):
            self._check_metadata_month(fields["month"], index=-1, record=fields, errors=errors)
        for name, pattern in self._kind.patterns.items():
            value = fields.get(name)
            if name not in fields or is_blank(value):
                continue
            if re.fullmatch(pattern, cell_text(value)) is None:
                errors.append(
                    self._error(
                        index=-1,
                        record=fields,
                        code=RowErrorCode.INVALID_VALUE,
                        field=name,
                        message=f"Invalid {self._kind.label(name)}: {cell_text(value)}.",
                    )
                )
        return errors

    def _check_year(
        self,
        value: Any,
        *,
        index: int,
        record: Mapping[str, Any],
        errors: list[RowError],
    ) -> None:
        if is_blank(value):
            return
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(
                self._error(
                    index=index,
                    record=record,
                    code=RowErrorCode.INVALID_VALUE,
                    field="year",
                    message=f"Invalid year: {cell_text(value)}.",
                )
            )
            return
        if not MIN_YEAR <= value <= MAX_YEAR:
            errors.append(
                self._error(
                    index=index,
                    record=record,
                    code=RowErrorCode.OUT_OF_RANGE,
                    field="year",
                    message=f"Year must be between {MIN_YEAR} and {MAX_YEAR} (got {value}).",
                )
            )

    def _check_metadata_month(
        self,
        value: Any,
        *,
        index: int,
        record: Mapping[str, Any],
        errors: list[RowError],
    ) -> None:
        if is_blank(value):
            return
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 12:
            errors.append(
                self._error(
                    index=index,
                    record=record,
                    code=RowErrorCode.INVALID_VALUE,
                    field="month",
                    message=f"Invalid month: {cell_text(value)}.",
                )
            )

    @staticmethod
    def _error(
        *,
        index: int,
        record: Mapping[str, Any],
        code: str,
        field: str,
        message: str,
    ) -> RowError:
        return RowError(index=index, record=dict(record), error=message, code=code, field=field)
