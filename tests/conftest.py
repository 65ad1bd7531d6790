"""
tests/conftest.py

In-memory collaborators for the ingestion core. No database, no network.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.ingestion import BatchMetadata, CanonicalRow, PeriodKey, PersonLink
from app.domain.interfaces import PersonLookupField
from app.normalizers.field_normalizers import identifier_key
from app.repositories.performance_record_repository import RecordPersistenceError

FIXED_NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)
MANAGER_ID = "mgr-1"


@dataclass(frozen=True)
class FakeMember:
    person_id: str
    name: str
    external_id: str | None = None
    email: str | None = None
    manager_id: str | None = MANAGER_ID
    is_active: bool = True


class FakePersonDirectory:
    def __init__(self, members: list[FakeMember], *, failing_identifiers: set[str] | None = None) -> None:
        self.members = list(members)
        self.lookups: list[tuple[str, str]] = []
        self.failing_identifiers = set(failing_identifiers or ())

    def lookup(
        self,
        identifier: str,
        *,
        by: str,
        scope_id: str | None = None,
        active_only: bool = True,
    ) -> PersonLink | None:
        self.lookups.append((identifier, by))
        if identifier in self.failing_identifiers:
            raise OperationalError(
                "SELECT team_members",
                {},
                Exception("canceling statement due to statement timeout"),
            )
        key = identifier_key(identifier)
        for member in self.members:
            value = member.name if by == PersonLookupField.NAME else member.external_id
            if identifier_key(value) != key:
                continue
            if active_only and not member.is_active:
                continue
            if scope_id and member.manager_id not in (None, scope_id):
                continue
            return PersonLink(
                person_id=member.person_id,
                display_name=member.name,
                external_id=member.external_id,
                contact=member.email,
            )
        return None


class FakeRecordStore:
    def __init__(self, *, fail_on_indices: set[int] | None = None) -> None:
        self.records: list[tuple[CanonicalRow, BatchMetadata]] = []
        self.fail_on_indices = set(fail_on_indices or ())

    def exists(
        self,
        *,
        kind: str,
        person_id: str,
        period_key: PeriodKey,
        scope_id: str,
        match_on: tuple[str, ...] = (),
    ) -> bool:
        return any(
            row.kind == kind
            and row.person.person_id == person_id
            and row.period_key.matches(period_key, match_on)
            and row.scope_id == scope_id
            for row, _ in self.records
        )

    def add(self, row: CanonicalRow, metadata: BatchMetadata) -> str:
        if row.index in self.fail_on_indices:
            raise RecordPersistenceError(f"Failed to persist row {row.index}.")
        self.records.append((row, metadata))
        return f"rec-{len(self.records)}"


class RecordingNotifier:
    def __init__(self, *, failing_contacts: set[str] | None = None) -> None:
        self.sent: list[tuple[str, Any]] = []
        self.failing_contacts = set(failing_contacts or ())
        self._lock = threading.Lock()

    def send(self, contact: str, digest: Any) -> None:
        if contact in self.failing_contacts:
            raise RuntimeError(f"SMTP refused {contact}")
        with self._lock:
            self.sent.append((contact, digest))


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def productivity_directory() -> FakePersonDirectory:
    return FakePersonDirectory(
        [
            FakeMember(person_id="p-1", name="Alice Smith", email="alice@example.com"),
            FakeMember(person_id="p-2", name="Bob Jones", email="bob@example.com"),
            FakeMember(person_id="p-3", name="Carol White", email=None),
            FakeMember(person_id="p-4", name="Dan Former", email="dan@example.com", is_active=False),
            FakeMember(person_id="p-5", name="Eve Other", email="eve@example.com", manager_id="mgr-2"),
        ]
    )


@pytest.fixture()
def reliability_directory() -> FakePersonDirectory:
    return FakePersonDirectory(
        [
            FakeMember(
                person_id=f"r-{number}",
                name=f"Worker {number}",
                external_id=f"DA{number:03d}",
                email=f"worker{number}@example.com",
            )
            for number in range(1, 11)
        ]
    )


@pytest.fixture()
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def make_store() -> type[FakeRecordStore]:
    return FakeRecordStore


@pytest.fixture()
def make_notifier() -> type[RecordingNotifier]:
    return RecordingNotifier


@pytest.fixture()
def manager_id() -> str:
    return MANAGER_ID
