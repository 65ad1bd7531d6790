"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.mapping_config import MappingConfig
from db.models.performance_record import PerformanceRecord
from db.models.team_member import TeamMember

__all__ = [
    "MappingConfig",
    "PerformanceRecord",
    "TeamMember",
]
