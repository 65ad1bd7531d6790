"""
app/services/record_service.py

Single-record creation. Shares resolution and validation with bulk ingestion
but, unlike bulk ingestion, rejects a record that already exists for the same
person and period.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Mapping

from app.domain.ingestion import BatchMetadata, BatchResult, CanonicalRow, RowError, RowErrorCode
from app.domain.interfaces import PersonDirectory, RecordStore, TaskExecutor
from app.domain.record_kinds import RecordKind
from app.mappers.column_resolver import MappingResolution, MatchStrategy
from app.mappers.row_resolver import RowResolver
from app.services.notification_service import NotificationFanout, get_notification_fanout

logger = logging.getLogger(__name__)


class DuplicateRecordError(ValueError):
    """
    Raised when a record already exists for the person and period.
    """


class RecordValidationError(ValueError):
    """
    Raised when a single submitted record fails resolution or validation.
    """

    def __init__(self, error: RowError) -> None:
        super().__init__(error.error)
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.error.error,
            "code": self.error.code,
            "field": self.error.field,
        }


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def identity_mapping(kind: RecordKind) -> MappingResolution:
    """
    Mapping for payloads that already use canonical field names.
    """

    return MappingResolution(
        kind=kind.name,
        canonical_to_source={name: name for name in kind.canonical_fields},
        source_headers=kind.canonical_fields,
        match_strategies={name: MatchStrategy.EXACT for name in kind.canonical_fields},
    )


class RecordService:
    def __init__(
        self,
        *,
        row_resolver: RowResolver | None = None,
        fanout: NotificationFanout | None = None,
        now_provider: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._row_resolver = row_resolver or RowResolver()
        self._fanout = fanout
        self._now_provider = now_provider

    def create(
        self,
        *,
        kind: RecordKind,
        payload: Mapping[str, Any],
        metadata: BatchMetadata,
        directory: PersonDirectory,
        store: RecordStore,
        executor: TaskExecutor | None = None,
    ) -> CanonicalRow:
        record_metadata = metadata.with_defaults(self._now_provider())
        canonical, error = self._row_resolver.resolve(
            kind=kind,
            raw_row=payload,
            mapping=identity_mapping(kind),
            metadata=record_metadata,
            index=0,
            directory=directory,
        )
        if canonical is None:
            raise RecordValidationError(
                error
                or RowError(
                    index=0,
                    record=dict(payload),
                    error="Record could not be resolved.",
                    code=RowErrorCode.UNEXPECTED_ERROR,
                )
            )

        if store.exists(
            kind=kind.name,
            person_id=canonical.person.person_id,
            period_key=canonical.period_key,
            scope_id=canonical.scope_id,
            match_on=kind.duplicate_period_fields,
        ):
            raise DuplicateRecordError(
                f"A {kind.name} record already exists for {canonical.person.display_name} "
                f"in {canonical.period_key.as_string()}."
            )

        identity = store.add(canonical, record_metadata)
        created = canonical.with_identity(identity)
        logger.info("Created %s record id=%s person=%s", kind.name, identity, created.person.display_name)

        if self._fanout is not None:
            self._fanout.dispatch(BatchResult(total=1, success=(created,)), kind, executor)
        return created


@lru_cache(maxsize=1)
def get_record_service() -> RecordService:
    return RecordService(fanout=get_notification_fanout())
