"""
app/api/routers package marker.
"""

from app.api.routers.bulk_ingestion import router as bulk_ingestion_router

__all__ = [
    "bulk_ingestion_router",
]
