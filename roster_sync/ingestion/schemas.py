"""Request/result models for roster ingestion."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field


class IngestRequest(BaseModel):
    """One roster upload to ingest."""

    model_config = ConfigDict(str_strip_whitespace=True)

    venue_id: str = Field(min_length=1, description="Venue owning the roster")
    file_url: str = Field(min_length=1, description="Where to download the file")
    week_hint: dt.date | None = Field(
        default=None, description="Any date in the roster week"
    )
    uploaded_by: str | None = Field(default=None, description="Uploading user")


class IngestionStats(BaseModel):
    """Diff and resolution counts for an ingested roster."""

    inserted: int = 0
    changed: int = 0
    unchanged: int = 0
    removed: int = 0
    matched_count: int = 0
    unmatched_count: int = 0


class IngestionResult(BaseModel):
    """Outcome of an ingestion.

    Either the roster version was fully resolved and stored (success) or
    nothing was created; there is no partial state.
    """

    success: bool = Field(description="Whether a roster version is available")
    roster_id: str | None = Field(default=None, description="Roster version id")
    version: int | None = Field(default=None, description="Version number")
    week_start_date: dt.date | None = Field(default=None)
    stats: IngestionStats | None = Field(default=None)
    unmatched_names: list[str] = Field(
        default_factory=list,
        description="Names needing manual reconciliation",
    )
    duplicate: bool = Field(
        default=False,
        description="True if the same file was already the current version",
    )
    error: str | None = Field(default=None)
    retryable: bool = Field(
        default=False, description="True if retrying the whole ingestion may succeed"
    )
