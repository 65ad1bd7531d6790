"""
app/domain/record_kinds.py

Descriptors for every importable metric family.

A RecordKind carries everything the generic ingestion engine needs to know
about one family: its canonical columns and how each is normalized, which
fields are required, the numeric domains it enforces, how the subject person is
looked up, how the reporting period is derived and which metrics are computed
on creation. Adding a new family means adding a descriptor here, not a new
pipeline.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Mapping

from app.domain.ingestion import PERIOD_KEY_FIELDS, BatchMetadata, PeriodKey
from app.domain.interfaces import PersonLookupField
from app.normalizers.field_normalizers import month_number


class FieldClass:
    IDENTIFIER = "identifier"
    MONTH = "month"
    PERIOD_LABEL = "period_label"
    PERCENTAGE = "percentage"
    COUNT = "count"
    TEXT = "text"


NUMERIC_FIELD_CLASSES = frozenset({FieldClass.PERCENTAGE, FieldClass.COUNT})

MIN_YEAR = 2020
MAX_YEAR = 2030


class UnknownRecordKindError(LookupError):
    """
    Raised when a record kind name is not registered.
    """


@dataclass(frozen=True)
class NumericRange:
    minimum: float | None = None
    maximum: float | None = None
    minimum_exclusive: bool = False

    def contains(self, value: float) -> bool:
        if self.minimum is not None:
            if self.minimum_exclusive and value <= self.minimum:
                return False
            if not self.minimum_exclusive and value < self.minimum:
                return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True

    def describe(self) -> str:
        if self.minimum is not None and self.maximum is not None:
            return f"between {self.minimum:g} and {self.maximum:g}"
        if self.minimum is not None:
            comparator = "greater than" if self.minimum_exclusive else "at least"
            return f"{comparator} {self.minimum:g}"
        if self.maximum is not None:
            return f"at most {self.maximum:g}"
        return "a number"


@dataclass(frozen=True)
class RecordKind:
    name: str
    display_name: str
    field_classes: Mapping[str, str]
    required_fields: tuple[str, ...]
    person_field: str
    person_lookup: str
    primary_metric: str
    keywords: Mapping[str, tuple[str, ...]]
    display_names: Mapping[str, str]
    metadata_fields: tuple[str, ...] = ()
    required_metadata: tuple[str, ...] = ()
    ranges: Mapping[str, NumericRange] = field(default_factory=dict)
    patterns: Mapping[str, str] = field(default_factory=dict)
    month_field: str | None = None
    period_label_field: str | None = None
    default_period_label: str = "monthly"
    duplicate_key: tuple[str, ...] = ()
    derive: Callable[[Mapping[str, Any]], dict[str, Any]] | None = None

    @property
    def canonical_fields(self) -> tuple[str, ...]:
        return tuple(self.field_classes)

    def fields_of(self, field_class: str) -> tuple[str, ...]:
        return tuple(name for name, cls in self.field_classes.items() if cls == field_class)

    @property
    def percentage_fields(self) -> tuple[str, ...]:
        return self.fields_of(FieldClass.PERCENTAGE)

    @property
    def count_fields(self) -> tuple[str, ...]:
        return self.fields_of(FieldClass.COUNT)

    def field_class(self, name: str) -> str:
        return self.field_classes.get(name, FieldClass.TEXT)

    def is_required(self, name: str) -> bool:
        return name in self.required_fields or name in self.required_metadata

    def label(self, name: str) -> str:
        return self.display_names.get(name, name)

    def keywords_for(self, name: str) -> tuple[str, ...]:
        return self.keywords.get(name, (name,))

    def period_key(self, fields: Mapping[str, Any], metadata: BatchMetadata) -> PeriodKey | None:
        """
        Derive the reporting period for a normalized row, or None if incomplete.
        """

        year = metadata.year
        if not isinstance(year, int):
            return None

        if self.month_field is not None:
            month = month_number(fields.get(self.month_field))
        else:
            month = metadata.month if isinstance(metadata.month, int) else None
        if month is None:
            return None

        if self.period_label_field is not None:
            label = fields.get(self.period_label_field)
        else:
            label = metadata.period or self.default_period_label
        if not isinstance(label, str) or not label:
            return None

        return PeriodKey(year=year, month=month, label=label)

    @property
    def duplicate_period_fields(self) -> tuple[str, ...]:
        """
        PeriodKey attributes named by ``duplicate_key``.

        The person field is matched by directory identity, so only the period
        parts are returned: a subset of ``year``, ``month`` and ``label``.
        """

        parts: list[str] = []
        for name in self.duplicate_key:
            if name == "year":
                part = "year"
            elif name in {self.month_field, "month"}:
                part = "month"
            elif name in {self.period_label_field, "period"}:
                part = "label"
            else:
                continue
            if part not in parts:
                parts.append(part)
        return tuple(parts) or PERIOD_KEY_FIELDS

    def derived_metrics(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        if self.derive is None:
            return {}
        return self.derive(fields)


def productivity_category(percentage: float) -> str:
    if percentage >= 120:
        return "Excellent"
    if percentage >= 100:
        return "Good"
    if percentage >= 80:
        return "Average"
    if percentage >= 60:
        return "Below Average"
    return "Poor"


def _derive_productivity(fields: Mapping[str, Any]) -> dict[str, Any]:
    percentage = float(fields.get("productivityPercentage") or 0)
    return {"performanceCategory": productivity_category(percentage)}


def _rate(numerator: Any, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return round(float(numerator or 0) / denominator * 100, 2)


def _derive_reliability(fields: Mapping[str, Any]) -> dict[str, Any]:
    opportunities = float(fields.get("totalOpportunities") or 0)
    return {
        "segmentAccuracy": _rate(fields.get("totalSegmentsMatching"), opportunities),
        "labelAccuracy": _rate(fields.get("totalLabelMatching"), opportunities),
        "defectRate": _rate(fields.get("totalDefects"), opportunities),
    }


PRODUCTIVITY = RecordKind(
    name="productivity",
    display_name="Productivity",
    field_classes={
        "associateName": FieldClass.IDENTIFIER,
        "month": FieldClass.MONTH,
        "week": FieldClass.PERIOD_LABEL,
        "productivityPercentage": FieldClass.PERCENTAGE,
        "notes": FieldClass.TEXT,
    },
    required_fields=("associateName", "month", "week", "productivityPercentage"),
    person_field="associateName",
    person_lookup=PersonLookupField.NAME,
    primary_metric="productivityPercentage",
    keywords={
        "associateName": ("associate", "name", "associatename", "associate name", "employee", "team member"),
        "month": ("month",),
        "week": ("week",),
        "productivityPercentage": (
            "productivity",
            "percentage",
            "%",
            "productivitypercentage",
            "productivity percentage",
            "performance",
        ),
        "notes": ("notes", "note", "comment", "remarks"),
    },
    display_names={
        "associateName": "Associate Name",
        "month": "Month",
        "week": "Week",
        "productivityPercentage": "Productivity Percentage",
        "notes": "Notes",
        "year": "Year",
    },
    metadata_fields=("year",),
    required_metadata=("year",),
    ranges={"productivityPercentage": NumericRange(minimum=0, maximum=500)},
    month_field="month",
    period_label_field="week",
    duplicate_key=("associateName", "year", "week"),
    derive=_derive_productivity,
)

RELIABILITY = RecordKind(
    name="reliability",
    display_name="Reliability",
    field_classes={
        "workerId": FieldClass.IDENTIFIER,
        "daId": FieldClass.IDENTIFIER,
        "totalTasks": FieldClass.COUNT,
        "totalOpportunities": FieldClass.COUNT,
        "totalSegmentsMatching": FieldClass.COUNT,
        "totalLabelMatching": FieldClass.COUNT,
        "totalDefects": FieldClass.COUNT,
        "overallReliabilityScore": FieldClass.PERCENTAGE,
    },
    required_fields=(
        "workerId",
        "daId",
        "totalTasks",
        "totalOpportunities",
        "totalDefects",
        "overallReliabilityScore",
    ),
    person_field="daId",
    person_lookup=PersonLookupField.EXTERNAL_ID,
    primary_metric="overallReliabilityScore",
    keywords={
        "workerId": ("worker", "id", "workerid"),
        "daId": ("da", "daid", "da id"),
        "totalTasks": ("task", "tasks", "totaltasks", "total tasks"),
        "totalOpportunities": ("opportunity", "opportunities", "totalopportunities", "total opportunities"),
        "totalSegmentsMatching": (
            "segment",
            "segments",
            "matching",
            "totalsegmentsmatching",
            "total segments matching",
        ),
        "totalLabelMatching": ("label", "labels", "totallabelmatching", "total label matching"),
        "totalDefects": ("defect", "defects", "totaldefects", "total defects"),
        "overallReliabilityScore": (
            "score",
            "reliability",
            "overall",
            "overallreliabilityscore",
            "overall reliability score",
        ),
    },
    display_names={
        "workerId": "Worker ID",
        "daId": "DA ID",
        "totalTasks": "Total Tasks",
        "totalOpportunities": "Total Opportunities",
        "totalSegmentsMatching": "Total Segments Matching",
        "totalLabelMatching": "Total Label Matching",
        "totalDefects": "Total Defects",
        "overallReliabilityScore": "Overall Reliability Score",
        "processname": "Process Name",
        "job_id": "Job ID",
        "year": "Year",
        "month": "Month",
    },
    metadata_fields=("processname", "job_id", "year", "month", "period"),
    required_metadata=("processname", "job_id", "year", "month"),
    ranges={
        "overallReliabilityScore": NumericRange(minimum=0, maximum=100),
        "totalTasks": NumericRange(minimum=0),
        "totalOpportunities": NumericRange(minimum=0, minimum_exclusive=True),
        "totalSegmentsMatching": NumericRange(minimum=0),
        "totalLabelMatching": NumericRange(minimum=0),
        "totalDefects": NumericRange(minimum=0),
    },
    patterns={
        "workerId": r"[0-9]+",
        "daId": r"[A-Za-z0-9]+",
        "job_id": r"[A-Za-z0-9_-]+",
    },
    duplicate_key=("daId", "year", "month", "period"),
    derive=_derive_reliability,
)

RECORD_KINDS: dict[str, RecordKind] = {
    PRODUCTIVITY.name: PRODUCTIVITY,
    RELIABILITY.name: RELIABILITY,
}


def get_record_kind(name: str) -> RecordKind:
    """
    Return the registered record kind for ``name`` (case-insensitive).
    """

    kind = RECORD_KINDS.get((name or "").strip().lower())
    if kind is None:
        allowed = ", ".join(sorted(RECORD_KINDS))
        raise UnknownRecordKindError(f"Unknown record kind {name!r}. Allowed values: {allowed}.")
    return kind
