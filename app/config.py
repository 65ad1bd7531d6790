"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class BulkIngestionSettings:
    """
    Runtime settings for spreadsheet bulk ingestion.
    """

    max_rows: int = 5000
    log_row_errors: bool = True


@dataclass(frozen=True)
class NotificationSettings:
    """
    Digest delivery settings. SMTP is used only when ``smtp_host`` is set.
    """

    enabled: bool = True
    max_workers: int = 4
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_sender: str = "no-reply@localhost"
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 10.0


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    return LoggingSettings(level=_get_str_env("LOG_LEVEL", "INFO").upper())


@lru_cache(maxsize=1)
def get_bulk_ingestion_settings() -> BulkIngestionSettings:
    """
    Return cached bulk ingestion settings from environment variables.
    """

    return BulkIngestionSettings(
        max_rows=max(1, _get_int_env("BULK_INGEST_MAX_ROWS", 5000)),
        log_row_errors=_get_bool_env("BULK_INGEST_LOG_ROW_ERRORS", True),
    )


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """
    Return cached notification settings from environment variables.
    """

    return NotificationSettings(
        enabled=_get_bool_env("NOTIFICATIONS_ENABLED", True),
        max_workers=max(1, _get_int_env("NOTIFICATION_MAX_WORKERS", 4)),
        smtp_host=_get_optional_str_env("SMTP_HOST"),
        smtp_port=_get_int_env("SMTP_PORT", 587),
        smtp_username=_get_optional_str_env("SMTP_USERNAME"),
        smtp_password=_get_optional_str_env("SMTP_PASSWORD"),
        smtp_sender=_get_str_env("SMTP_SENDER", "no-reply@localhost"),
        smtp_use_tls=_get_bool_env("SMTP_USE_TLS", True),
        smtp_timeout_seconds=max(1.0, _get_float_env("SMTP_TIMEOUT_SECONDS", 10.0)),
    )
