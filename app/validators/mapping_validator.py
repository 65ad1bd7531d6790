"""
app/validators/mapping_validator.py

Validation for column mapping resolution.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from app.domain.record_kinds import RecordKind


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "canonical_field": self.canonical_field,
            "source_column": self.source_column,
            "context": self.context,
        }


class MappingIncompleteError(ValueError):
    """
    Raised when a column mapping cannot be used for automatic ingestion.

    Carries the proposal so the caller can route to manual mapping.
    """

    def __init__(
        self,
        *,
        message: str,
        errors: Sequence[MappingErrorDetail],
        proposal: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)
        self.proposal = proposal

    @property
    def unmapped_required(self) -> list[str]:
        return [
            error.canonical_field
            for error in self.errors
            if error.code == "required_field_unmapped" and error.canonical_field
        ]

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "message": self.message,
            "errors": [error.to_dict() for error in self.errors],
        }
        if self.proposal is not None and hasattr(self.proposal, "to_dict"):
            payload["proposal"] = self.proposal.to_dict()
        return payload


class MappingValidator:
    """
    Validates resolved canonical-to-source mappings for one record kind.
    """

    def __init__(self, kind: RecordKind) -> None:
        self._kind = kind
        self._canonical_set = set(kind.canonical_fields)

    def collect_errors(
        self,
        *,
        mapping: Mapping[str, str],
        source_headers: Sequence[str],
        pre_errors: Sequence[MappingErrorDetail] | None = None,
    ) -> list[MappingErrorDetail]:
        """
        Return every problem with the mapping without raising.
        """

        errors: list[MappingErrorDetail] = list(pre_errors or [])
        headers_set = set(source_headers)

        columns_by_key: dict[str, list[str]] = defaultdict(list)
        for header in source_headers:
            columns_by_key[header.strip().casefold()].append(header)
        for columns in columns_by_key.values():
            if len(columns) < 2:
                continue
            errors.append(
                MappingErrorDetail(
                    code="duplicate_header",
                    message=f"The uploaded file has more than one column named {columns[0]}.",
                    source_column=columns[0],
                    context={"occurrences": len(columns)},
                )
            )

        for canonical_field, source_column in mapping.items():
            if canonical_field not in self._canonical_set:
                errors.append(
                    MappingErrorDetail(
                        code="invalid_canonical_field",
                        message="Unknown canonical field in mapping.",
                        canonical_field=canonical_field,
                        source_column=source_column,
                    )
                )
            if source_column not in headers_set:
                errors.append(
                    MappingErrorDetail(
                        code="unknown_source_column",
                        message="Mapped source column does not exist in the spreadsheet headers.",
                        canonical_field=canonical_field,
                        source_column=source_column,
                    )
                )

        fields_by_column: dict[str, list[str]] = defaultdict(list)
        for canonical_field, source_column in mapping.items():
            fields_by_column[source_column].append(canonical_field)
        for source_column, canonical_fields in fields_by_column.items():
            if len(canonical_fields) < 2:
                continue
            errors.append(
                MappingErrorDetail(
                    code="duplicate_source_column",
                    message=(
                        f"Cannot map multiple fields to the same uploaded column: {source_column}."
                    ),
                    source_column=source_column,
                    context={"canonical_fields": canonical_fields},
                )
            )

        for required in self._kind.required_fields:
            if required not in mapping:
                errors.append(
                    MappingErrorDetail(
                        code="required_field_unmapped",
                        message=f"Please map the required column: {self._kind.label(required)}.",
                        canonical_field=required,
                        context={"source_headers": list(source_headers)},
                    )
                )

        return errors

    def validate(
        self,
        *,
        mapping: Mapping[str, str],
        source_headers: Sequence[str],
        pre_errors: Sequence[MappingErrorDetail] | None = None,
        proposal: Any | None = None,
    ) -> None:
        """
        Validate mapping and raise structured errors if invalid.
        """

        errors = self.collect_errors(
            mapping=mapping,
            source_headers=source_headers,
            pre_errors=pre_errors,
        )
        if errors:
            missing_required = [
                error.canonical_field
                for error in errors
                if error.code == "required_field_unmapped" and error.canonical_field
            ]
            if missing_required:
                detail = f"Missing required fields: {', '.join(sorted(set(missing_required)))}."
            else:
                detail = errors[0].message
            raise MappingIncompleteError(
                message=f"Column mapping is incomplete for {self._kind.name}. {detail}",
                errors=errors,
                proposal=proposal,
            )
