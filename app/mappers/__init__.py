"""
app/mappers package marker.
"""

from app.mappers.column_resolver import ColumnResolver, MappingResolution, MatchStrategy
from app.mappers.row_resolver import RowResolver

__all__ = [
    "ColumnResolver",
    "MappingResolution",
    "MatchStrategy",
    "RowResolver",
]
