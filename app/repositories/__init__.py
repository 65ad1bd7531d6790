"""
app/repositories package marker.
"""

from app.repositories.mapping_config_repository import MappingConfigRepository
from app.repositories.performance_record_repository import RecordPersistenceError, SqlRecordStore
from app.repositories.person_directory_repository import SqlPersonDirectory

__all__ = [
    "MappingConfigRepository",
    "RecordPersistenceError",
    "SqlPersonDirectory",
    "SqlRecordStore",
]
