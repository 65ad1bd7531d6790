"""
app/domain package marker.
"""

from app.domain.ingestion import (
    BatchMetadata,
    BatchResult,
    BatchStatus,
    CanonicalRow,
    PeriodKey,
    PersonLink,
    RowError,
    RowErrorCode,
)
from app.domain.record_kinds import RECORD_KINDS, RecordKind, UnknownRecordKindError, get_record_kind

__all__ = [
    "BatchMetadata",
    "BatchResult",
    "BatchStatus",
    "CanonicalRow",
    "PeriodKey",
    "PersonLink",
    "RowError",
    "RowErrorCode",
    "RECORD_KINDS",
    "RecordKind",
    "UnknownRecordKindError",
    "get_record_kind",
]
