"""
app/domain/ingestion.py

Domain models shared by column resolution, row resolution, validation and the
batch ingestion engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Mapping

from app.normalizers.field_normalizers import month_number, normalize_month


class BatchStatus:
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


class RowErrorCode:
    REQUIRED_FIELD_MISSING = "required_field_missing"
    INVALID_NUMBER = "invalid_number"
    INVALID_VALUE = "invalid_value"
    OUT_OF_RANGE = "out_of_range"
    PERSON_NOT_FOUND = "person_not_found"
    PERSISTENCE_ERROR = "persistence_error"
    UNEXPECTED_ERROR = "unexpected_error"


PERIOD_KEY_FIELDS = ("year", "month", "label")


@dataclass(frozen=True)
class PeriodKey:
    """
    Reporting interval a record belongs to.
    """

    year: int
    month: int
    label: str

    def as_string(self) -> str:
        return f"{self.year}-{self.month:02d}-{self.label}"

    def matches(self, other: PeriodKey, fields: tuple[str, ...] = ()) -> bool:
        """
        Compare only the named attributes; all of them when ``fields`` is empty.
        """

        return all(getattr(self, name) == getattr(other, name) for name in fields or PERIOD_KEY_FIELDS)


@dataclass(frozen=True)
class PersonLink:
    """
    Directory identity resolved for the subject of one record.
    """

    person_id: str
    display_name: str
    external_id: str | None = None
    contact: str | None = None


@dataclass(frozen=True)
class BatchMetadata:
    """
    Values shared by every row of one upload.

    ``scope_id`` is the uploading manager; records and duplicate checks are
    scoped to it. ``attributes`` carries kind-specific metadata such as the
    reliability process name and job id.
    """

    scope_id: str
    year: Any = None
    month: Any = None
    period: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def with_defaults(self, now: datetime) -> BatchMetadata:
        """
        Fill year/month from ``now`` when the upload did not provide them.
        """

        year = self.year if self.year not in (None, "") else now.year
        if isinstance(year, str) and year.strip().isdigit():
            year = int(year.strip())

        month = self.month
        if month in (None, ""):
            month = now.month
        elif not isinstance(month, int):
            month = month_number(normalize_month(month)) or month

        return replace(self, year=year, month=month)

    def value(self, name: str) -> Any:
        if name == "year":
            return self.year
        if name == "month":
            return self.month
        if name == "period":
            return self.period
        return self.attributes.get(name)


@dataclass(frozen=True)
class CanonicalRow:
    """
    Fully resolved and validated record produced from one spreadsheet row.
    """

    index: int
    kind: str
    fields: Mapping[str, Any]
    person: PersonLink
    period_key: PeriodKey
    scope_id: str
    identity: str | None = None

    def with_identity(self, identity: str) -> CanonicalRow:
        return replace(self, identity=identity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.identity,
            "index": self.index,
            "kind": self.kind,
            "personId": self.person.person_id,
            "personName": self.person.display_name,
            "scopeId": self.scope_id,
            "periodKey": self.period_key.as_string(),
            **dict(self.fields),
        }


@dataclass(frozen=True)
class RowError:
    """
    One failed row with the raw content needed to correct it.
    """

    index: int
    record: Mapping[str, Any]
    error: str
    code: str
    field: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "record": dict(self.record),
            "error": self.error,
            "code": self.code,
            "field": self.field,
        }


@dataclass(frozen=True)
class BatchResult:
    """
    Per-row ledger for one ingestion run.
    """

    total: int
    success: tuple[CanonicalRow, ...] = ()
    failed: tuple[RowError, ...] = ()
    skipped: int = 0

    @property
    def status(self) -> str:
        if not self.success:
            return BatchStatus.ERROR
        if not self.failed:
            return BatchStatus.SUCCESS
        return BatchStatus.PARTIAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "success": [row.to_dict() for row in self.success],
            "failed": [error.to_dict() for error in self.failed],
            "skipped": self.skipped,
            "status": self.status,
        }


BATCH_STATUS_HTTP_CODES: dict[str, int] = {
    BatchStatus.SUCCESS: 201,
    BatchStatus.PARTIAL: 207,
    BatchStatus.ERROR: 400,
}
