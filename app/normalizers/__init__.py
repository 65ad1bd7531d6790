"""
app/normalizers package marker.
"""

from app.normalizers.field_normalizers import (
    MONTH_NAMES,
    identifier_key,
    normalize_count,
    normalize_identifier,
    normalize_month,
    normalize_percentage,
    normalize_period_label,
)

__all__ = [
    "MONTH_NAMES",
    "identifier_key",
    "normalize_count",
    "normalize_identifier",
    "normalize_month",
    "normalize_percentage",
    "normalize_period_label",
]
