"""
tests/test_bulk_ingestion_service.py

Pytest unit tests for BulkIngestionService.

All collaborators are in-memory fakes; no database, no SMTP.

Coverage
--------
- Row isolation: one bad row never affects its neighbours
- Batch status for all-success, partial and all-error uploads
- Blank rows skipped and excluded from the total
- Mapping, metadata and size failures raise before any write
- Persistence and unexpected failures become row errors
- Bulk imports are append-only
- Digest fan-out after ingestion, isolated from the batch result
"""

from __future__ import annotations

import json
import logging

import pytest

from app.domain.ingestion import BatchMetadata, BatchStatus, RowErrorCode
from app.domain.record_kinds import PRODUCTIVITY, RELIABILITY
from app.services.bulk_ingestion_service import BatchMetadataError, BatchTooLargeError, BulkIngestionService
from app.services.notification_service import NotificationFanout
from app.validators.mapping_validator import MappingIncompleteError

PRODUCTIVITY_HEADERS = ["Associate Name", "Month", "Week", "Productivity %"]
RELIABILITY_HEADERS = [
    "Worker ID",
    "DA ID",
    "Total Tasks",
    "Total Opportunities",
    "Total Segments Matching",
    "Total Label Matching",
    "Total Defects",
    "Overall Reliability Score",
]


def _reliability_rows(count: int = 10) -> list[list[object]]:
    return [
        [str(1000 + number), f"DA{number:03d}", "40", "200", "190", "180", "4", "0.95"]
        for number in range(1, count + 1)
    ]


@pytest.fixture()
def service(notifier, fixed_now) -> BulkIngestionService:
    return BulkIngestionService(
        max_rows=50,
        log_row_errors=True,
        fanout=NotificationFanout(notifier=notifier, max_workers=3),
        now_provider=lambda: fixed_now,
    )


@pytest.fixture()
def reliability_metadata(manager_id) -> BatchMetadata:
    return BatchMetadata(
        scope_id=manager_id,
        attributes={"processname": "Annotation", "job_id": "JOB-7"},
    )


@pytest.fixture()
def productivity_metadata(manager_id) -> BatchMetadata:
    return BatchMetadata(scope_id=manager_id)


class TestRowIsolation:
    def test_unknown_person_and_negative_count_in_ten_rows(
        self, service, reliability_metadata, reliability_directory, store, notifier
    ) -> None:
        rows = _reliability_rows()
        rows[5][1] = "DA999"
        rows[8][6] = "-3"

        result = service.ingest(
            kind=RELIABILITY,
            headers=RELIABILITY_HEADERS,
            rows=rows,
            metadata=reliability_metadata,
            directory=reliability_directory,
            store=store,
        )

        assert result.total == 10
        assert len(result.success) == 8
        assert [error.index for error in result.failed] == [5, 8]
        assert result.failed[0].code == RowErrorCode.PERSON_NOT_FOUND
        assert result.failed[1].code == RowErrorCode.OUT_OF_RANGE
        assert result.failed[1].record["Total Defects"] == "-3"
        assert result.status == BatchStatus.PARTIAL
        assert len(store.records) == 8
        assert [row.identity for row in result.success] == [f"rec-{n}" for n in range(1, 9)]
        assert len(notifier.sent) == 8

    def test_defaults_year_and_month_from_clock(
        self, service, reliability_metadata, reliability_directory, store
    ) -> None:
        result = service.ingest(
            kind=RELIABILITY,
            headers=RELIABILITY_HEADERS,
            rows=_reliability_rows(1),
            metadata=reliability_metadata,
            directory=reliability_directory,
            store=store,
        )

        row = result.success[0]
        assert row.period_key.as_string() == "2024-03-monthly"
        assert row.fields["year"] == 2024
        _, stored_metadata = store.records[0]
        assert stored_metadata.month == 3

    def test_persistence_failure_is_a_row_error(
        self, service, productivity_metadata, productivity_directory, make_store
    ) -> None:
        store = make_store(fail_on_indices={1})

        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[
                ["Alice Smith", "Jan", "1", "0.9"],
                ["Bob Jones", "Jan", "1", "0.8"],
                ["Carol White", "Jan", "1", "1.1"],
            ],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        assert [row.index for row in result.success] == [0, 2]
        assert result.failed[0].index == 1
        assert result.failed[0].code == RowErrorCode.PERSISTENCE_ERROR
        assert result.status == BatchStatus.PARTIAL

    def test_unexpected_failure_is_a_row_error(self, service, productivity_metadata, productivity_directory, store) -> None:
        class _FlakyDirectory:
            def lookup(self, identifier, *, by, scope_id=None, active_only=True):
                if identifier == "Bob Jones":
                    raise ConnectionError("directory offline")
                return productivity_directory.lookup(identifier, by=by, scope_id=scope_id, active_only=active_only)

        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[["Alice Smith", "Jan", "1", "0.9"], ["Bob Jones", "Jan", "1", "0.8"]],
            metadata=productivity_metadata,
            directory=_FlakyDirectory(),
            store=store,
        )

        assert len(result.success) == 1
        assert result.failed[0].code == RowErrorCode.UNEXPECTED_ERROR
        assert "directory offline" in result.failed[0].error

    def test_database_error_in_lookup_fails_only_that_row(
        self, service, reliability_metadata, reliability_directory, store
    ) -> None:
        reliability_directory.failing_identifiers = {"DA003"}

        result = service.ingest(
            kind=RELIABILITY,
            headers=RELIABILITY_HEADERS,
            rows=_reliability_rows(6),
            metadata=reliability_metadata,
            directory=reliability_directory,
            store=store,
        )

        assert [error.index for error in result.failed] == [2]
        assert result.failed[0].code == RowErrorCode.UNEXPECTED_ERROR
        assert "OperationalError" in result.failed[0].error
        assert [row.index for row in result.success] == [0, 1, 3, 4, 5]
        assert [identifier for identifier, _ in reliability_directory.lookups] == [
            f"DA{number:03d}" for number in range(1, 7)
        ]
        assert result.status == BatchStatus.PARTIAL


class TestBatchStatus:
    def test_all_rows_succeed(self, service, productivity_metadata, productivity_directory, store) -> None:
        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[["Alice Smith", "January", "Week 1", "95%"], ["bob jones", "2", "week2", "1.0"]],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        assert result.status == BatchStatus.SUCCESS
        assert result.failed == ()
        assert result.success[1].fields["associateName"] == "Bob Jones"
        assert result.success[1].fields["month"] == "February"
        assert result.success[1].fields["productivityPercentage"] == 100

    def test_all_rows_fail(self, service, productivity_metadata, productivity_directory, store, notifier) -> None:
        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[["Nobody", "Jan", "1", "90"], ["Alice Smith", "Smarch", "1", "90"]],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        assert result.status == BatchStatus.ERROR
        assert result.total == 2
        assert result.success == ()
        assert store.records == []
        assert notifier.sent == []

    def test_result_serializes_ledger(self, service, productivity_metadata, productivity_directory, store) -> None:
        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[["Alice Smith", "Jan", "1", "90"], ["Nobody", "Jan", "1", "90"]],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        payload = result.to_dict()
        assert payload["status"] == "partial"
        assert payload["success"][0]["periodKey"] == "2024-01-Week 1"
        assert payload["failed"][0]["record"] == {
            "Associate Name": "Nobody",
            "Month": "Jan",
            "Week": "1",
            "Productivity %": "90",
        }


class TestBlankRows:
    def test_blank_rows_are_skipped_and_indices_kept(
        self, service, productivity_metadata, productivity_directory, store
    ) -> None:
        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[
                ["Alice Smith", "Jan", "1", "90"],
                ["", None, "  ", ""],
                ["Nobody", "Jan", "1", "90"],
            ],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        assert result.total == 2
        assert result.skipped == 1
        assert result.failed[0].index == 2

    def test_only_blank_rows(self, service, productivity_metadata, productivity_directory, store, notifier) -> None:
        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[["", "", "", ""]],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        assert result.total == 0
        assert result.skipped == 1
        assert result.status == BatchStatus.ERROR
        assert notifier.sent == []


class TestPreflightFailures:
    def test_incomplete_mapping_writes_nothing(self, service, productivity_metadata, productivity_directory, store) -> None:
        with pytest.raises(MappingIncompleteError) as exc_info:
            service.ingest(
                kind=PRODUCTIVITY,
                headers=["Associate Name", "Month"],
                rows=[["Alice Smith", "Jan"]],
                metadata=productivity_metadata,
                directory=productivity_directory,
                store=store,
            )

        assert set(exc_info.value.unmapped_required) == {"week", "productivityPercentage"}
        assert store.records == []

    def test_repeated_header_writes_nothing(self, service, productivity_metadata, productivity_directory, store) -> None:
        with pytest.raises(MappingIncompleteError) as exc_info:
            service.ingest(
                kind=PRODUCTIVITY,
                headers=["Associate Name", "Month", "Week", "Week", "Productivity %"],
                rows=[["Alice Smith", "Jan", "", "3", "0.9"]],
                metadata=productivity_metadata,
                directory=productivity_directory,
                store=store,
            )

        errors = exc_info.value.to_dict()["errors"]
        assert [error["code"] for error in errors] == ["duplicate_header"]
        assert errors[0]["source_column"] == "Week"
        assert productivity_directory.lookups == []
        assert store.records == []

    def test_manual_mapping_completes_the_proposal(
        self, service, productivity_metadata, productivity_directory, store
    ) -> None:
        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=["Agent", "Month", "Wk", "Output"],
            rows=[["Alice Smith", "Jan", "3", "0.7"]],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
            column_mapping={"associateName": "Agent", "week": "Wk", "productivityPercentage": "Output"},
        )

        assert result.status == BatchStatus.SUCCESS
        assert result.success[0].fields["week"] == "Week 3"

    def test_missing_reliability_metadata(self, service, manager_id, reliability_directory, store) -> None:
        with pytest.raises(BatchMetadataError) as exc_info:
            service.ingest(
                kind=RELIABILITY,
                headers=RELIABILITY_HEADERS,
                rows=_reliability_rows(2),
                metadata=BatchMetadata(scope_id=manager_id, attributes={"job_id": "JOB-7"}),
                directory=reliability_directory,
                store=store,
            )

        assert [error["field"] for error in exc_info.value.to_dict()["errors"]] == ["processname"]
        assert store.records == []

    def test_year_outside_supported_range(self, service, manager_id, productivity_directory, store) -> None:
        with pytest.raises(BatchMetadataError):
            service.ingest(
                kind=PRODUCTIVITY,
                headers=PRODUCTIVITY_HEADERS,
                rows=[["Alice Smith", "Jan", "1", "90"]],
                metadata=BatchMetadata(scope_id=manager_id, year="2019"),
                directory=productivity_directory,
                store=store,
            )

    def test_row_limit(self, notifier, fixed_now, productivity_metadata, productivity_directory, store) -> None:
        service = BulkIngestionService(max_rows=2, log_row_errors=False, now_provider=lambda: fixed_now)

        with pytest.raises(BatchTooLargeError) as exc_info:
            service.ingest(
                kind=PRODUCTIVITY,
                headers=PRODUCTIVITY_HEADERS,
                rows=[["Alice Smith", "Jan", str(week), "90"] for week in range(1, 4)],
                metadata=productivity_metadata,
                directory=productivity_directory,
                store=store,
            )

        assert exc_info.value.rows == 3
        assert store.records == []


class TestAppendOnly:
    def test_same_upload_twice_creates_two_sets(
        self, service, productivity_metadata, productivity_directory, store
    ) -> None:
        rows = [["Alice Smith", "Jan", "1", "90"], ["Bob Jones", "Jan", "1", "85"]]

        for _ in range(2):
            result = service.ingest(
                kind=PRODUCTIVITY,
                headers=PRODUCTIVITY_HEADERS,
                rows=rows,
                metadata=productivity_metadata,
                directory=productivity_directory,
                store=store,
            )
            assert result.status == BatchStatus.SUCCESS

        assert len(store.records) == 4


class TestNotifications:
    def test_one_digest_per_person_with_contact(
        self, service, productivity_metadata, productivity_directory, store, notifier
    ) -> None:
        service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[
                ["Alice Smith", "Jan", "1", "90"],
                ["Alice Smith", "Jan", "2", "95"],
                ["Bob Jones", "Jan", "1", "85"],
                ["Carol White", "Jan", "1", "85"],
            ],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        by_contact = {contact: digest for contact, digest in notifier.sent}
        assert set(by_contact) == {"alice@example.com", "bob@example.com"}
        assert len(by_contact["alice@example.com"].rows) == 2

    def test_failed_delivery_does_not_change_result(
        self, fixed_now, productivity_metadata, productivity_directory, store, make_notifier
    ) -> None:
        notifier = make_notifier(failing_contacts={"alice@example.com"})
        service = BulkIngestionService(
            max_rows=50,
            log_row_errors=True,
            fanout=NotificationFanout(notifier=notifier, max_workers=2),
            now_provider=lambda: fixed_now,
        )

        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[["Alice Smith", "Jan", "1", "90"], ["Bob Jones", "Jan", "1", "85"]],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
        )

        assert result.status == BatchStatus.SUCCESS
        assert len(result.success) == 2
        assert [contact for contact, _ in notifier.sent] == ["bob@example.com"]

    def test_deferred_executor_runs_after_result(
        self, service, productivity_metadata, productivity_directory, store, notifier
    ) -> None:
        class _DeferredExecutor:
            def __init__(self) -> None:
                self.tasks = []

            def submit(self, task, *args, **kwargs) -> None:
                self.tasks.append((task, args, kwargs))

        executor = _DeferredExecutor()
        result = service.ingest(
            kind=PRODUCTIVITY,
            headers=PRODUCTIVITY_HEADERS,
            rows=[["Alice Smith", "Jan", "1", "90"]],
            metadata=productivity_metadata,
            directory=productivity_directory,
            store=store,
            executor=executor,
        )

        assert result.status == BatchStatus.SUCCESS
        assert notifier.sent == []
        task, args, kwargs = executor.tasks[0]
        task(*args, **kwargs)
        assert [contact for contact, _ in notifier.sent] == ["alice@example.com"]


def test_completion_is_logged(service, productivity_metadata, productivity_directory, store, caplog) -> None:
    caplog.set_level(logging.INFO, logger="app.services.bulk_ingestion_service")

    service.ingest(
        kind=PRODUCTIVITY,
        headers=PRODUCTIVITY_HEADERS,
        rows=[["Alice Smith", "Jan", "1", "90"], ["Nobody", "Jan", "1", "90"]],
        metadata=productivity_metadata,
        directory=productivity_directory,
        store=store,
    )

    events = [
        json.loads(record.getMessage())
        for record in caplog.records
        if record.getMessage().startswith("{")
    ]
    completed = [event for event in events if event["event"] == "bulk_ingestion_completed"]
    assert completed[0]["succeeded"] == 1
    assert completed[0]["failed"] == 1
    assert completed[0]["status"] == "partial"
    assert any("Row rejected" in record.getMessage() for record in caplog.records)
