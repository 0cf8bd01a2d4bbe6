"""Roster ingestion and version history endpoints."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from roster_sync.extraction.week import parse_week_hint, week_start
from roster_sync.ingestion.schemas import IngestionResult, IngestRequest
from roster_sync.ingestion.service import RosterIngestionService
from roster_sync.repositories.roster_repo import RosterRepository

router = APIRouter(prefix="/rosters", tags=["rosters"])


class IngestRosterRequest(BaseModel):
    """Request to ingest an uploaded roster file."""

    venue_id: str = Field(description="Venue owning the roster")
    file_url: str = Field(description="Download URL of the roster image")
    week_hint: str | None = Field(
        default=None,
        description="Roster week as an ISO date or free text ('27/10', 'next monday')",
    )
    uploaded_by: str | None = Field(default=None, description="Uploading user id")


class VersionSummary(BaseModel):
    """One stored version of a roster week."""

    id: str
    version_number: int
    shift_count: int
    uploaded_by: str | None = None
    created_at: str


class VersionListResponse(BaseModel):
    """All versions of a venue's roster week."""

    venue_id: str
    week_start_date: date
    versions: list[VersionSummary]


def get_ingestion_service(request: Request) -> RosterIngestionService:
    """Dependency to get RosterIngestionService from app state."""
    service = getattr(request.app.state, "ingestion_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ingestion service not initialized")
    return service


def get_roster_repo(request: Request) -> RosterRepository:
    """Dependency to get RosterRepository from app state."""
    repo = getattr(request.app.state, "roster_repo", None)
    if repo is None:
        raise HTTPException(status_code=503, detail="Roster repository not initialized")
    return repo


@router.post("/ingest", response_model=IngestionResult)
async def ingest_roster(
    body: IngestRosterRequest,
    service: RosterIngestionService = Depends(get_ingestion_service),
):
    """Ingest a roster upload.

    Downloads and extracts the roster, resolves employees, stores the
    next version for the week and records per-user shift changes.

    Returns:
        IngestionResult. Failed ingestions carry the same body with
        status 502 when retrying may help, otherwise 422.

    Raises:
        HTTPException: 422 if the week hint cannot be parsed
    """
    try:
        week_hint = parse_week_hint(body.week_hint, reference=datetime.now())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    result = await service.ingest(
        IngestRequest(
            venue_id=body.venue_id,
            file_url=body.file_url,
            week_hint=week_hint,
            uploaded_by=body.uploaded_by,
        )
    )
    if not result.success:
        return JSONResponse(
            status_code=502 if result.retryable else 422,
            content=result.model_dump(mode="json"),
        )
    return result


@router.get("/{venue_id}/{week_start_date}/versions", response_model=VersionListResponse)
async def list_roster_versions(
    venue_id: str,
    week_start_date: date,
    roster_repo: RosterRepository = Depends(get_roster_repo),
) -> VersionListResponse:
    """List stored versions of a roster week, oldest first.

    Any date in the week may be given; it is anchored to its Monday.

    Raises:
        HTTPException: 404 if the week has no roster
    """
    monday = week_start(week_start_date)
    versions = await roster_repo.list_versions(venue_id, monday)
    if not versions:
        raise HTTPException(
            status_code=404,
            detail=f"No roster for venue {venue_id} week {monday.isoformat()}",
        )
    return VersionListResponse(
        venue_id=venue_id,
        week_start_date=monday,
        versions=[VersionSummary(**v) for v in versions],
    )
