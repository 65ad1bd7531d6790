"""
app/schemas/bulk_ingestion.py

Request and response schemas for record ingestion endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class BatchMetadataFields(BaseModel):
    """
    Values shared by every row of one upload.
    """

    manager_id: str = Field(..., min_length=1, description="Uploading manager; scopes lookups and records")
    year: int | str | None = Field(default=None, description="Defaults to the current year")
    month: int | str | None = Field(default=None, description="1-12 or a month name; defaults to the current month")
    period: str | None = Field(default=None, description="Reliability period label, 'monthly' by default")
    processname: str | None = None
    job_id: str | None = None


class ColumnMappingRequest(BaseModel):
    headers: list[Any] = Field(..., min_length=1)
    manual_overrides: dict[str, str] | None = None
    mapping_config_name: str | None = None
    manager_id: str | None = None


class MappingErrorResponse(BaseModel):
    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None


class ColumnMappingResponse(BaseModel):
    """
    Proposed mapping for a human to confirm.
    """

    kind: str
    mapping: dict[str, str]
    source_headers: list[str]
    match_strategies: dict[str, str]
    unmapped_required: list[str]
    errors: list[MappingErrorResponse] = Field(default_factory=list)
    display_names: dict[str, str]
    required_fields: list[str]
    is_complete: bool
    mapping_config_id: str | None = None


class SaveColumnMappingRequest(BaseModel):
    mapping: dict[str, str] = Field(..., min_length=1)
    manager_id: str | None = None
    alias_overrides: dict[str, list[str]] | None = None
    notes: str | None = Field(default=None, max_length=500)


class SavedColumnMappingResponse(BaseModel):
    id: str
    name: str
    record_kind: str
    manager_id: str | None = None
    mapping: dict[str, str]


class BulkIngestionRequest(BatchMetadataFields):
    """
    JSON upload: header row plus a row matrix.
    """

    headers: list[Any] = Field(..., min_length=1)
    rows: list[list[Any]] = Field(default_factory=list)
    column_mapping: dict[str, str] | None = None
    mapping_config_name: str | None = None


class RecordCreateRequest(BatchMetadataFields):
    """
    Single record keyed by canonical field names.
    """

    fields: dict[str, Any] = Field(..., min_length=1)


class RowErrorResponse(BaseModel):
    index: int = Field(..., ge=0)
    record: dict[str, Any]
    error: str
    code: str
    field: str | None = None


class BatchResultResponse(BaseModel):
    """
    Per-row ledger for one upload.
    """

    total: int = Field(..., ge=0)
    success: list[dict[str, Any]] = Field(default_factory=list)
    failed: list[RowErrorResponse] = Field(default_factory=list)
    skipped: int = Field(default=0, ge=0)
    status: str


class RecordResponse(BaseModel):
    record: dict[str, Any]
