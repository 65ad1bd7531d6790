"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation and collaborator wiring.
"""

from __future__ import annotations

from fastapi import BackgroundTasks, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.domain.interfaces import PersonDirectory, RecordStore, TaskExecutor
from app.domain.record_kinds import RecordKind, UnknownRecordKindError, get_record_kind
from app.repositories.mapping_config_repository import MappingConfigRepository
from app.repositories.performance_record_repository import SqlRecordStore
from app.repositories.person_directory_repository import SqlPersonDirectory
from app.services.task_executors import FastAPIBackgroundTaskExecutor
from db.session import get_db

SPREADSHEET_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV or XLSX by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_spreadsheet_filename = filename.endswith((".csv", ".xlsx"))
    is_spreadsheet_content_type = content_type in SPREADSHEET_CONTENT_TYPES

    if not is_spreadsheet_filename and not is_spreadsheet_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV or XLSX files are allowed.",
        )

    return file


def get_kind(kind: str) -> RecordKind:
    try:
        return get_record_kind(kind)
    except UnknownRecordKindError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


def get_person_directory(db: Session = Depends(get_db)) -> PersonDirectory:
    return SqlPersonDirectory(db)


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    return SqlRecordStore(db)


def get_mapping_config_repository(db: Session = Depends(get_db)) -> MappingConfigRepository:
    return MappingConfigRepository(db)


def get_task_executor(background_tasks: BackgroundTasks) -> TaskExecutor:
    return FastAPIBackgroundTaskExecutor(background_tasks)
