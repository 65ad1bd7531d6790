"""
app/schemas package marker.
"""

from app.schemas.bulk_ingestion import (
    BatchResultResponse,
    BulkIngestionRequest,
    ColumnMappingRequest,
    ColumnMappingResponse,
    RecordCreateRequest,
    RecordResponse,
    RowErrorResponse,
    SaveColumnMappingRequest,
    SavedColumnMappingResponse,
)

__all__ = [
    "BatchResultResponse",
    "BulkIngestionRequest",
    "ColumnMappingRequest",
    "ColumnMappingResponse",
    "RecordCreateRequest",
    "RecordResponse",
    "RowErrorResponse",
    "SaveColumnMappingRequest",
    "SavedColumnMappingResponse",
]
