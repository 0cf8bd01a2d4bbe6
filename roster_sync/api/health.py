"""Health probes for the roster service.

Readiness requires the database and both pipelines (ingestion and
notification sweeping) to be wired. The sweep scheduler is reported but
does not gate readiness, since manual sweeps still work without it.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from roster_sync.config import settings
from roster_sync.notifications.scheduler import scheduler_running

router = APIRouter(prefix="/health", tags=["health"])

REQUIRED_COMPONENTS = ("database", "ingestion_service", "notification_sweeper")


class HealthResponse(BaseModel):
    """Service identity and clock."""

    status: str
    timestamp: datetime
    version: str
    environment: str


class LivenessResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Per-component readiness."""

    status: str
    checks: dict[str, str] = Field(
        description="ok, failed or not_configured per component; "
        "running or stopped for the scheduler"
    )


@router.get("/", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report service version and environment."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=settings.app_version,
        environment=settings.app_env,
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    return LivenessResponse(status="alive")


async def _check_database(request: Request) -> str:
    db = getattr(request.app.state, "db", None)
    if db is None:
        return "not_configured"
    return "ok" if await db.is_healthy() else "failed"


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> ReadinessResponse:
    """Check the database, the wired services and the sweep scheduler."""
    checks = {"database": await _check_database(request)}
    for name in ("ingestion_service", "notification_sweeper"):
        wired = getattr(request.app.state, name, None) is not None
        checks[name] = "ok" if wired else "not_configured"
    checks["notification_scheduler"] = "running" if scheduler_running() else "stopped"

    ready = all(checks[name] == "ok" for name in REQUIRED_COMPONENTS)
    return ReadinessResponse(status="ready" if ready else "not_ready", checks=checks)
