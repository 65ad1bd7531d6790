"""
app/api/routers/bulk_ingestion.py

Record ingestion HTTP endpoints: column-mapping proposal and confirmation,
bulk ingestion from JSON or an uploaded spreadsheet, and single-record creation.
"""

from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import (
    get_kind,
    get_mapping_config_repository,
    get_person_directory,
    get_record_store,
    get_spreadsheet_upload,
    get_task_executor,
)
from app.domain.ingestion import BATCH_STATUS_HTTP_CODES, BatchMetadata, BatchResult
from app.domain.interfaces import PersonDirectory, RecordStore, TaskExecutor
from app.domain.record_kinds import RecordKind
from app.parsers.spreadsheet_reader import SpreadsheetFormatError, read_spreadsheet
from app.repositories.mapping_config_repository import MappingConfigRepository
from app.repositories.performance_record_repository import RecordPersistenceError
from app.schemas.bulk_ingestion import (
    BatchMetadataFields,
    BatchResultResponse,
    BulkIngestionRequest,
    ColumnMappingRequest,
    ColumnMappingResponse,
    MappingErrorResponse,
    RecordCreateRequest,
    RecordResponse,
    RowErrorResponse,
    SaveColumnMappingRequest,
    SavedColumnMappingResponse,
)
from app.services.bulk_ingestion_service import (
    BatchMetadataError,
    BatchTooLargeError,
    BulkIngestionService,
    get_bulk_ingestion_service,
)
from app.services.record_service import (
    DuplicateRecordError,
    RecordService,
    RecordValidationError,
    get_record_service,
)
from app.validators.mapping_validator import MappingIncompleteError

router = APIRouter(prefix="/records", tags=["records"])


@router.post("/{kind}/column-mapping", response_model=ColumnMappingResponse)
def propose_column_mapping(
    payload: ColumnMappingRequest,
    record_kind: RecordKind = Depends(get_kind),
    mapping_repository: MappingConfigRepository = Depends(get_mapping_config_repository),
    ingestion_service: BulkIngestionService = Depends(get_bulk_ingestion_service),
) -> ColumnMappingResponse:
    """
    Propose a column mapping for the given headers.
    """

    mapping_config = _load_mapping_config(
        mapping_repository,
        record_kind=record_kind,
        name=payload.mapping_config_name,
        scope_id=payload.manager_id,
    )
    proposal = ingestion_service.propose_mapping(
        kind=record_kind,
        headers=payload.headers,
        manual_overrides=payload.manual_overrides,
        mapping_config=mapping_config,
    )
    return ColumnMappingResponse(
        kind=proposal.kind,
        mapping=proposal.canonical_to_source,
        source_headers=list(proposal.source_headers),
        match_strategies=proposal.match_strategies,
        unmapped_required=list(proposal.unmapped_required),
        errors=[MappingErrorResponse(**error.to_dict()) for error in proposal.errors],
        display_names={name: record_kind.label(name) for name in record_kind.canonical_fields},
        required_fields=list(record_kind.required_fields),
        is_complete=proposal.is_complete,
        mapping_config_id=proposal.mapping_config_id,
    )


@router.put("/{kind}/column-mapping/{name}", response_model=SavedColumnMappingResponse)
def save_column_mapping(
    name: str,
    payload: SaveColumnMappingRequest,
    record_kind: RecordKind = Depends(get_kind),
    mapping_repository: MappingConfigRepository = Depends(get_mapping_config_repository),
) -> SavedColumnMappingResponse:
    """
    Save a confirmed mapping so later uploads can reuse it by name.
    """

    unknown = sorted(set(payload.mapping) - set(record_kind.canonical_fields))
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown canonical fields for {record_kind.name}: {', '.join(unknown)}.",
        )

    try:
        config = mapping_repository.save(
            name=name,
            record_kind=record_kind.name,
            field_mapping=payload.mapping,
            scope_id=payload.manager_id,
            alias_overrides=payload.alias_overrides,
            notes=payload.notes,
        )
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to save column mapping.",
        ) from exc

    return SavedColumnMappingResponse(
        id=str(config.id),
        name=config.name,
        record_kind=config.record_kind,
        manager_id=config.scope_id,
        mapping=config.field_mapping_json,
    )


@router.post("/{kind}/bulk", response_model=BatchResultResponse)
def bulk_ingest(
    payload: BulkIngestionRequest,
    record_kind: RecordKind = Depends(get_kind),
    directory: PersonDirectory = Depends(get_person_directory),
    store: RecordStore = Depends(get_record_store),
    mapping_repository: MappingConfigRepository = Depends(get_mapping_config_repository),
    executor: TaskExecutor = Depends(get_task_executor),
    ingestion_service: BulkIngestionService = Depends(get_bulk_ingestion_service),
) -> JSONResponse:
    """
    Ingest a header row plus row matrix. Responds 201, 207 or 400 by batch status.
    """

    mapping_config = _load_mapping_config(
        mapping_repository,
        record_kind=record_kind,
        name=payload.mapping_config_name,
        scope_id=payload.manager_id,
    )
    result = _run_ingestion(
        ingestion_service,
        kind=record_kind,
        headers=payload.headers,
        rows=payload.rows,
        metadata=_batch_metadata(payload),
        directory=directory,
        store=store,
        column_mapping=payload.column_mapping,
        mapping_config=mapping_config,
        executor=executor,
    )
    return _batch_response(result)


@router.post("/{kind}/bulk-upload", response_model=BatchResultResponse)
def bulk_upload(
    file: UploadFile = Depends(get_spreadsheet_upload),
    manager_id: str = Form(..., min_length=1),
    year: str | None = Form(default=None),
    month: str | None = Form(default=None),
    period: str | None = Form(default=None),
    processname: str | None = Form(default=None),
    job_id: str | None = Form(default=None),
    column_mapping: str | None = Form(default=None, description="JSON object: canonical field -> header"),
    mapping_config_name: str | None = Form(default=None),
    record_kind: RecordKind = Depends(get_kind),
    directory: PersonDirectory = Depends(get_person_directory),
    store: RecordStore = Depends(get_record_store),
    mapping_repository: MappingConfigRepository = Depends(get_mapping_config_repository),
    executor: TaskExecutor = Depends(get_task_executor),
    ingestion_service: BulkIngestionService = Depends(get_bulk_ingestion_service),
) -> JSONResponse:
    """
    Ingest an uploaded CSV or XLSX file.
    """

    try:
        spreadsheet = read_spreadsheet(file.file, filename=file.filename or "")
    except SpreadsheetFormatError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    finally:
        file.file.close()

    metadata_fields = BatchMetadataFields(
        manager_id=manager_id,
        year=year,
        month=month,
        period=period,
        processname=processname,
        job_id=job_id,
    )
    mapping_config = _load_mapping_config(
        mapping_repository,
        record_kind=record_kind,
        name=mapping_config_name,
        scope_id=manager_id,
    )
    result = _run_ingestion(
        ingestion_service,
        kind=record_kind,
        headers=spreadsheet.headers,
        rows=spreadsheet.rows,
        metadata=_batch_metadata(metadata_fields),
        directory=directory,
        store=store,
        column_mapping=_parse_column_mapping(column_mapping),
        mapping_config=mapping_config,
        executor=executor,
    )
    return _batch_response(result)


@router.post("/{kind}", status_code=status.HTTP_201_CREATED, response_model=RecordResponse)
def create_record(
    payload: RecordCreateRequest,
    record_kind: RecordKind = Depends(get_kind),
    directory: PersonDirectory = Depends(get_person_directory),
    store: RecordStore = Depends(get_record_store),
    executor: TaskExecutor = Depends(get_task_executor),
    record_service: RecordService = Depends(get_record_service),
) -> RecordResponse:
    """
    Create one record; a record for the same person and period is rejected.
    """

    try:
        created = record_service.create(
            kind=record_kind,
            payload=payload.fields,
            metadata=_batch_metadata(payload),
            directory=directory,
            store=store,
            executor=executor,
        )
    except RecordValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    except DuplicateRecordError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RecordPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to persist record.",
        ) from exc

    return RecordResponse(record=jsonable_encoder(created.to_dict()))


def _run_ingestion(ingestion_service: BulkIngestionService, **kwargs: Any) -> BatchResult:
    try:
        return ingestion_service.ingest(**kwargs)
    except MappingIncompleteError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    except BatchMetadataError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.to_dict()) from exc
    except BatchTooLargeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _batch_metadata(fields: BatchMetadataFields) -> BatchMetadata:
    attributes = {
        name: value
        for name, value in (("processname", fields.processname), ("job_id", fields.job_id))
        if value is not None
    }
    return BatchMetadata(
        scope_id=fields.manager_id.strip(),
        year=fields.year,
        month=fields.month,
        period=fields.period,
        attributes=attributes,
    )


def _load_mapping_config(
    repository: MappingConfigRepository,
    *,
    record_kind: RecordKind,
    name: str | None,
    scope_id: str | None,
) -> Any | None:
    if not name:
        return None
    config = repository.get_active(record_kind=record_kind.name, name=name, scope_id=scope_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Column mapping not found: {name}",
        )
    return config


def _parse_column_mapping(raw: str | None) -> dict[str, str] | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="column_mapping must be a JSON object.",
        ) from exc
    if not isinstance(parsed, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in parsed.items()
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="column_mapping must map canonical field names to header names.",
        )
    return parsed


def _batch_response(result: BatchResult) -> JSONResponse:
    body = BatchResultResponse(
        total=result.total,
        success=[row.to_dict() for row in result.success],
        failed=[RowErrorResponse(**error.to_dict()) for error in result.failed],
        skipped=result.skipped,
        status=result.status,
    )
    return JSONResponse(
        status_code=BATCH_STATUS_HTTP_CODES[result.status],
        content=jsonable_encoder(body),
    )
