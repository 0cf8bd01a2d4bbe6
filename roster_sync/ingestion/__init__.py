"""Roster ingestion pipeline."""

from roster_sync.ingestion.schemas import IngestionResult, IngestionStats, IngestRequest
from roster_sync.ingestion.service import RosterIngestionService

__all__ = [
    "IngestRequest",
    "IngestionResult",
    "IngestionStats",
    "RosterIngestionService",
]
