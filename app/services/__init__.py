"""
app/services package marker.
"""

from app.services.bulk_ingestion_service import (
    BatchMetadataError,
    BatchTooLargeError,
    BulkIngestionService,
    get_bulk_ingestion_service,
)
from app.services.notification_service import (
    LoggingNotifier,
    NotificationError,
    NotificationFanout,
    SMTPNotifier,
    get_notification_fanout,
)
from app.services.record_service import (
    DuplicateRecordError,
    RecordService,
    RecordValidationError,
    get_record_service,
)

__all__ = [
    "BatchMetadataError",
    "BatchTooLargeError",
    "BulkIngestionService",
    "get_bulk_ingestion_service",
    "LoggingNotifier",
    "NotificationError",
    "NotificationFanout",
    "SMTPNotifier",
    "get_notification_fanout",
    "DuplicateRecordError",
    "RecordService",
    "RecordValidationError",
    "get_record_service",
]
