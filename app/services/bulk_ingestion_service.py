"""
app/services/bulk_ingestion_service.py

Batch ingestion engine for spreadsheet uploads.

One pass per upload:

    1. resolve the column mapping once; an incomplete mapping stops the batch
    2. per row, in order: resolve -> validate -> persist (one commit per row)
    3. aggregate the per-row ledger into a BatchResult
    4. hand successful rows to the notification fan-out

Any failure on one row becomes a RowError for that row and processing moves on
to the next. Bulk imports are append-only: rows are never checked against
existing records for the same period.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Mapping, Sequence

from app.config import get_bulk_ingestion_settings
from app.domain.ingestion import BatchMetadata, BatchResult, CanonicalRow, RowError, RowErrorCode
from app.domain.interfaces import PersonDirectory, RecordStore, TaskExecutor
from app.domain.record_kinds import RecordKind
from app.logging_utils import log_event
from app.mappers.column_resolver import ColumnResolver, MappingResolution
from app.mappers.row_resolver import RowResolver
from app.normalizers.field_normalizers import cell_text
from app.repositories.performance_record_repository import RecordPersistenceError
from app.services.notification_service import NotificationFanout, get_notification_fanout
from app.validators.record_validator import RecordValidator

logger = logging.getLogger(__name__)


class BatchTooLargeError(ValueError):
    """
    Raised when an upload has more data rows than the configured limit.
    """

    def __init__(self, *, rows: int, max_rows: int) -> None:
        super().__init__(f"Upload has {rows} rows; the limit is {max_rows}.")
        self.rows = rows
        self.max_rows = max_rows


class BatchMetadataError(ValueError):
    """
    Raised when the metadata shared by every row is missing or invalid.
    """

    def __init__(self, *, errors: Sequence[RowError]) -> None:
        fields = ", ".join(sorted({error.field or "" for error in errors}))
        super().__init__(f"Invalid batch metadata: {fields}.")
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": str(self),
            "errors": [
                {"field": error.field, "code": error.code, "error": error.error}
                for error in self.errors
            ],
        }


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class BulkIngestionService:
    """
    Coordinates mapping, per-row resolution, persistence and notification.
    """

    def __init__(
        self,
        *,
        max_rows: int,
        log_row_errors: bool,
        column_resolver: ColumnResolver | None = None,
        row_resolver: RowResolver | None = None,
        fanout: NotificationFanout | None = None,
        now_provider: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._max_rows = max(1, max_rows)
        self._log_row_errors = log_row_errors
        self._column_resolver = column_resolver or ColumnResolver()
        self._row_resolver = row_resolver or RowResolver(column_resolver=self._column_resolver)
        self._fanout = fanout
        self._now_provider = now_provider

    def propose_mapping(
        self,
        *,
        kind: RecordKind,
        headers: Sequence[Any],
        manual_overrides: Mapping[str, str] | None = None,
        mapping_config: Any | None = None,
    ) -> MappingResolution:
        """
        Suggest a column mapping for a human to confirm.
        """

        return self._column_resolver.propose(
            kind,
            headers,
            manual_overrides=manual_overrides,
            mapping_config=mapping_config,
        )

    def ingest(
        self,
        *,
        kind: RecordKind,
        headers: Sequence[Any],
        rows: Sequence[Sequence[Any]],
        metadata: BatchMetadata,
        directory: PersonDirectory,
        store: RecordStore,
        column_mapping: Mapping[str, str] | None = None,
        mapping_config: Any | None = None,
        executor: TaskExecutor | None = None,
    ) -> BatchResult:
        """
        Ingest every row independently and return the per-row ledger.

        Raises MappingIncompleteError, BatchMetadataError or BatchTooLargeError
        before any row is written.
        """

        started = time.perf_counter()
        header_keys = [cell_text(header) for header in headers]
        raw_rows = [(index, self._row_dict(header_keys, row)) for index, row in enumerate(rows)]
        data_rows = [
            (index, raw_row)
            for index, raw_row in raw_rows
            if not RecordValidator.is_completely_empty_row(raw_row)
        ]
        skipped = len(raw_rows) - len(data_rows)
        if len(data_rows) > self._max_rows:
            raise BatchTooLargeError(rows=len(data_rows), max_rows=self._max_rows)

        mapping = self._column_resolver.resolve(
            kind,
            headers,
            manual_overrides=column_mapping,
            mapping_config=mapping_config,
        )

        batch_metadata = metadata.with_defaults(self._now_provider())
        metadata_errors = RecordValidator(kind).validate_metadata(batch_metadata)
        if metadata_errors:
            raise BatchMetadataError(errors=metadata_errors)

        success: list[CanonicalRow] = []
        failed: list[RowError] = []

        for index, raw_row in data_rows:
            try:
                canonical, error = self._row_resolver.resolve(
                    kind=kind,
                    raw_row=raw_row,
                    mapping=mapping,
                    metadata=batch_metadata,
                    index=index,
                    directory=directory,
                )
                if error is not None or canonical is None:
                    self._record_error(failed, error or self._unexpected(index, raw_row, "Row was not resolved."))
                    continue

                identity = store.add(canonical, batch_metadata)
                success.append(canonical.with_identity(identity))
            except RecordPersistenceError as exc:
                logger.exception("Persistence failed kind=%s row=%s", kind.name, index)
                self._record_error(
                    failed,
                    RowError(
                        index=index,
                        record=raw_row,
                        error=str(exc),
                        code=RowErrorCode.PERSISTENCE_ERROR,
                    ),
                )
            except Exception as exc:  # noqa: BLE001
                logger.exception("Unexpected row failure kind=%s row=%s", kind.name, index)
                self._record_error(failed, self._unexpected(index, raw_row, f"{type(exc).__name__}: {exc}"))

        result = BatchResult(
            total=len(data_rows),
            success=tuple(success),
            failed=tuple(failed),
            skipped=skipped,
        )
        log_event(
            logger,
            logging.INFO,
            "bulk_ingestion_completed",
            kind=kind.name,
            scope_id=batch_metadata.scope_id,
            total=result.total,
            succeeded=len(result.success),
            failed=len(result.failed),
            skipped=result.skipped,
            status=result.status,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )

        if self._fanout is not None and result.success:
            self._fanout.dispatch(result, kind, executor)

        return result

    def _record_error(self, failed: list[RowError], error: RowError) -> None:
        if self._log_row_errors:
            logger.warning(
                "Row rejected row=%s code=%s field=%s message=%s",
                error.index,
                error.code,
                error.field,
                error.error,
            )
        failed.append(error)

    @staticmethod
    def _row_dict(header_keys: Sequence[str], row: Sequence[Any]) -> dict[str, Any]:
        raw_row: dict[str, Any] = {}
        for position, header in enumerate(header_keys):
            if not header or header in raw_row:
                continue
            raw_row[header] = row[position] if position < len(row) else None
        return raw_row

    @staticmethod
    def _unexpected(index: int, raw_row: Mapping[str, Any], message: str) -> RowError:
        return RowError(
            index=index,
            record=dict(raw_row),
            error=message,
            code=RowErrorCode.UNEXPECTED_ERROR,
        )


@lru_cache(maxsize=1)
def get_bulk_ingestion_service() -> BulkIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """

    settings = get_bulk_ingestion_settings()
    return BulkIngestionService(
        max_rows=settings.max_rows,
        log_row_errors=settings.log_row_errors,
        fanout=get_notification_fanout(),
    )
