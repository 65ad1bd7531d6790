"""
app/domain/interfaces.py

Contracts for the collaborators the ingestion core depends on.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from app.domain.ingestion import BatchMetadata, CanonicalRow, PeriodKey, PersonLink


class PersonLookupField:
    NAME = "name"
    EXTERNAL_ID = "external_id"


class PersonDirectory(Protocol):
    def lookup(
        self,
        identifier: str,
        *,
        by: str,
        scope_id: str | None = None,
        active_only: bool = True,
    ) -> PersonLink | None:
        """
        Case-insensitive lookup by display name or external id.
        """
        ...


class RecordStore(Protocol):
    def exists(
        self,
        *,
        kind: str,
        person_id: str,
        period_key: PeriodKey,
        scope_id: str,
        match_on: tuple[str, ...] = (),
    ) -> bool:
        """
        True if an active record exists for the person whose period matches
        ``period_key`` on the ``match_on`` attributes (all when empty).
        """
        ...

    def add(self, row: CanonicalRow, metadata: BatchMetadata) -> str:
        """
        Persist one record atomically and return its identity.
        """
        ...


class Notifier(Protocol):
    def send(self, contact: str, digest: Any) -> None:
        """
        Deliver one digest; raises on delivery failure.
        """
        ...


class TaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...
