"""
app/repositories/performance_record_repository.py

Persistence and duplicate lookup for imported performance records.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import PERIOD_KEY_FIELDS, BatchMetadata, CanonicalRow, PeriodKey
from app.domain.record_kinds import get_record_kind
from db.models.performance_record import PerformanceRecord

logger = logging.getLogger(__name__)

_PERIOD_COLUMNS = {
    "year": PerformanceRecord.year,
    "month": PerformanceRecord.month,
    "label": PerformanceRecord.period_label,
}


class RecordPersistenceError(RuntimeError):
    """
    Raised when one record cannot be written.
    """


class SqlRecordStore:
    """
    Writes one record per transaction; a failed row never rolls back another.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def exists(
        self,
        *,
        kind: str,
        person_id: str,
        period_key: PeriodKey,
        scope_id: str,
        match_on: tuple[str, ...] = (),
    ) -> bool:
        stmt = (
            select(PerformanceRecord.id)
            .where(PerformanceRecord.record_kind == kind)
            .where(PerformanceRecord.person_id == uuid.UUID(person_id))
            .where(PerformanceRecord.scope_id == scope_id)
            .where(PerformanceRecord.is_active.is_(True))
        )
        for name in match_on or PERIOD_KEY_FIELDS:
            stmt = stmt.where(_PERIOD_COLUMNS[name] == getattr(period_key, name))

        try:
            return self._session.execute(stmt.limit(1)).scalar_one_or_none() is not None
        except SQLAlchemyError:
            self._session.rollback()
            raise

    def add(self, row: CanonicalRow, metadata: BatchMetadata) -> str:
        kind = get_record_kind(row.kind)
        record = PerformanceRecord(
            record_kind=row.kind,
            person_id=uuid.UUID(row.person.person_id),
            person_name=row.person.display_name,
            scope_id=row.scope_id,
            year=row.period_key.year,
            month=row.period_key.month,
            period_label=row.period_key.label,
            period_key=row.period_key.as_string(),
            primary_metric=float(row.fields.get(kind.primary_metric) or 0),
            metrics_json=dict(row.fields),
            metadata_json=self._metadata_payload(metadata),
            is_active=True,
        )
        try:
            self._session.add(record)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RecordPersistenceError(
                f"Failed to persist {row.kind} record for {row.person.display_name}."
            ) from exc

        logger.debug("Persisted %s record id=%s row=%s", row.kind, record.id, row.index)
        return str(record.id)

    @staticmethod
    def _metadata_payload(metadata: BatchMetadata) -> dict[str, Any]:
        payload: dict[str, Any] = dict(metadata.attributes)
        payload.update(
            {
                "scope_id": metadata.scope_id,
                "year": metadata.year,
                "month": metadata.month,
                "period": metadata.period,
            }
        )
        return payload
