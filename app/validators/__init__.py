"""
app/validators package marker.
"""

from app.validators.mapping_validator import MappingErrorDetail, MappingIncompleteError, MappingValidator
from app.validators.record_validator import RecordValidator

__all__ = [
    "MappingErrorDetail",
    "MappingIncompleteError",
    "MappingValidator",
    "RecordValidator",
]
