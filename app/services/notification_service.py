"""
app/services/notification_service.py

Post-ingestion digest fan-out.

Successful rows are grouped by the person's contact address and one digest is
sent per person. Delivery runs after the batch result is built, through a task
executor, with recipients handled concurrently on a thread pool. A failed
delivery is logged and never touches the batch result or another recipient.
"""

from __future__ import annotations

import logging
import smtplib
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from email.message import EmailMessage
from functools import lru_cache
from typing import Any, Mapping, Sequence

from app.config import NotificationSettings, get_notification_settings
from app.domain.ingestion import BatchResult
from app.domain.interfaces import Notifier, TaskExecutor
from app.domain.record_kinds import PRODUCTIVITY, RELIABILITY, RecordKind
from app.logging_utils import log_event
from app.normalizers.field_normalizers import MONTH_NAMES
from app.services.task_executors import InlineTaskExecutor

logger = logging.getLogger(__name__)


class NotificationError(RuntimeError):
    """
    Raised by a notifier when one digest cannot be delivered.
    """


@dataclass(frozen=True)
class RecordDigest:
    """
    Everything one person is told about one upload.
    """

    contact: str
    person_name: str
    kind: str
    rows: tuple[Mapping[str, Any], ...]


@dataclass(frozen=True)
class DeliverySummary:
    sent: int = 0
    failed: int = 0


def productivity_status(percentage: float) -> str:
    if percentage >= 100:
        return "Above Target"
    if percentage >= 80:
        return "On Target"
    return "Below Target"


def _format_number(value: Any) -> str:
    try:
        return f"{float(value):.2f}"
    except (TypeError, ValueError):
        return "0.00"


def _render_productivity(digest: RecordDigest) -> tuple[str, str]:
    lines = [f"Hello {digest.person_name},", "", "Your productivity data has been updated.", ""]
    total = 0.0
    for row in digest.rows:
        percentage = float(row.get("productivityPercentage") or 0)
        total += percentage
        lines.append(
            f"- {row.get('month') or 'N/A'} {row.get('week') or 'N/A'} {row.get('year') or 'N/A'}: "
            f"{percentage:g}% ({productivity_status(percentage)})"
        )
    average = total / len(digest.rows) if digest.rows else 0.0
    lines.extend(["", f"Records: {len(digest.rows)}", f"Average productivity: {average:.2f}%"])
    return "Your Productivity Data Has Been Updated", "\n".join(lines)


def _render_reliability(digest: RecordDigest) -> tuple[str, str]:
    lines = [f"Hello {digest.person_name},", "", "Your reliability data has been updated.", ""]
    for row in digest.rows:
        month = row.get("month")
        month_name = MONTH_NAMES[month - 1] if isinstance(month, int) and 1 <= month <= 12 else "N/A"
        lines.extend(
            [
                f"{month_name} {row.get('year') or 'N/A'} ({row.get('period') or 'monthly'})",
                f"  Process: {row.get('processname') or 'N/A'}  Job ID: {row.get('job_id') or 'N/A'}",
                f"  Worker ID: {row.get('workerId') or 'N/A'}  DA ID: {row.get('daId') or 'N/A'}",
                f"  Overall reliability score: {_format_number(row.get('overallReliabilityScore'))}",
                f"  Tasks: {row.get('totalTasks') or 0}  Opportunities: {row.get('totalOpportunities') or 0}"
                f"  Defects: {row.get('totalDefects') or 0}",
                f"  Segment accuracy: {_format_number(row.get('segmentAccuracy'))}%"
                f"  Label accuracy: {_format_number(row.get('labelAccuracy'))}%"
                f"  Defect rate: {_format_number(row.get('defectRate'))}%",
                "",
            ]
        )
    return "Your Reliability Data Has Been Updated", "\n".join(lines).rstrip() + "\n"


def _render_generic(digest: RecordDigest) -> tuple[str, str]:
    lines = [f"Hello {digest.person_name},", "", f"{len(digest.rows)} {digest.kind} record(s) were imported."]
    return f"Your {digest.kind.title()} Data Has Been Updated", "\n".join(lines)


_RENDERERS: dict[str, Callable[[RecordDigest], tuple[str, str]]] = {
    PRODUCTIVITY.name: _render_productivity,
    RELIABILITY.name: _render_reliability,
}


def render_digest(digest: RecordDigest) -> tuple[str, str]:
    """
    Return ``(subject, body)`` for one digest.
    """

    renderer = _RENDERERS.get(digest.kind, _render_generic)
    return renderer(digest)


class SMTPNotifier:
    """
    Sends plain-text digests over SMTP.
    """

    def __init__(self, settings: NotificationSettings) -> None:
        if not settings.smtp_host:
            raise ValueError("SMTP_HOST is required for SMTP delivery.")
        self._settings = settings

    def send(self, contact: str, digest: RecordDigest) -> None:
        settings = self._settings
        subject, body = render_digest(digest)

        message = EmailMessage()
        message["From"] = settings.smtp_sender
        message["To"] = contact
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(
                settings.smtp_host,
                settings.smtp_port,
                timeout=settings.smtp_timeout_seconds,
            ) as client:
                if settings.smtp_use_tls:
                    client.starttls()
                if settings.smtp_username:
                    client.login(settings.smtp_username, settings.smtp_password or "")
                client.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"Failed to send digest to {contact}: {exc}") from exc


class LoggingNotifier:
    """
    Writes digests to the log instead of sending them.
    """

    def send(self, contact: str, digest: RecordDigest) -> None:
        subject, body = render_digest(digest)
        logger.info("Digest for %s subject=%r\n%s", contact, subject, body)


def build_notifier(settings: NotificationSettings) -> Notifier:
    if settings.smtp_host:
        return SMTPNotifier(settings)
    return LoggingNotifier()


class NotificationFanout:
    """
    Builds per-person digests from a batch result and delivers them.
    """

    def __init__(
        self,
        *,
        notifier: Notifier,
        max_workers: int = 4,
        enabled: bool = True,
    ) -> None:
        self._notifier = notifier
        self._max_workers = max(1, max_workers)
        self._enabled = enabled

    def build_digests(self, result: BatchResult, kind: RecordKind) -> list[RecordDigest]:
        grouped: dict[str, list[Mapping[str, Any]]] = {}
        names: dict[str, str] = {}
        for row in result.success:
            contact = (row.person.contact or "").strip()
            if not contact:
                logger.info(
                    "Skipping digest for %s row=%s: no contact address",
                    row.person.display_name,
                    row.index,
                )
                continue
            grouped.setdefault(contact, []).append(row.fields)
            names.setdefault(contact, row.person.display_name)

        return [
            RecordDigest(contact=contact, person_name=names[contact], kind=kind.name, rows=tuple(rows))
            for contact, rows in grouped.items()
        ]

    def dispatch(
        self,
        result: BatchResult,
        kind: RecordKind,
        executor: TaskExecutor | None = None,
    ) -> int:
        """
        Hand the digests for ``result`` to ``executor``; returns how many were scheduled.
        """

        if not self._enabled:
            return 0
        digests = self.build_digests(result, kind)
        if not digests:
            return 0

        try:
            (executor or InlineTaskExecutor()).submit(self.deliver, digests)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to schedule %s digests for %s recipients", kind.name, len(digests))
            return 0
        return len(digests)

    def deliver(self, digests: Sequence[RecordDigest]) -> DeliverySummary:
        if not digests:
            return DeliverySummary()

        workers = min(self._max_workers, len(digests))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="digest") as pool:
            outcomes = list(pool.map(self._deliver_one, digests))

        summary = DeliverySummary(sent=sum(outcomes), failed=len(outcomes) - sum(outcomes))
        log_event(
            logger,
            logging.INFO,
            "digests_delivered",
            sent=summary.sent,
            failed=summary.failed,
        )
        return summary

    def _deliver_one(self, digest: RecordDigest) -> bool:
        try:
            self._notifier.send(digest.contact, digest)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Digest delivery failed contact=%s kind=%s rows=%s: %s",
                digest.contact,
                digest.kind,
                len(digest.rows),
                exc,
            )
            return False
        return True


@lru_cache(maxsize=1)
def get_notification_fanout() -> NotificationFanout:
    """
    Build and cache the fan-out with env-driven settings.
    """

    settings = get_notification_settings()
    return NotificationFanout(
        notifier=build_notifier(settings),
        max_workers=settings.max_workers,
        enabled=settings.enabled,
    )
