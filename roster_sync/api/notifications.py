"""Notification sweep endpoint.

Runs the same sweep the scheduler runs, on demand.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from roster_sync.notifications.sweeper import NotificationSweeper

router = APIRouter(prefix="/notifications", tags=["notifications"])


class SweepResponse(BaseModel):
    """Summary of a manual sweep."""

    processed: int = Field(description="Change records claimed and handled")
    failed_users: list[str] = Field(default_factory=list)
    message: str


def get_notification_sweeper(request: Request) -> NotificationSweeper:
    """Dependency to get NotificationSweeper from app state."""
    sweeper = getattr(request.app.state, "notification_sweeper", None)
    if sweeper is None:
        raise HTTPException(
            status_code=503, detail="Notification sweeper not initialized"
        )
    return sweeper


@router.post("/sweep", response_model=SweepResponse)
async def sweep_notifications(
    sweeper: NotificationSweeper = Depends(get_notification_sweeper),
) -> SweepResponse:
    """Notify users about recent, unclaimed shift changes."""
    result = await sweeper.sweep()
    return SweepResponse(
        processed=result.processed,
        failed_users=result.failed_users,
        message=(
            f"Sent {len(result.payloads)} notifications "
            f"for {result.processed} changes"
        ),
    )
