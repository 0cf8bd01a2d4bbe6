"""Notification schemas for shift change alerts."""

from pydantic import BaseModel, ConfigDict, Field

FALLBACK_TITLE = "Roster Updated"
FALLBACK_BODY = "Your roster has changed"


class ShiftSummary(BaseModel):
    """Day/time/role view of one shift, as shown to the employee."""

    date: str = Field(description="YYYY-MM-DD")
    start: str = Field(description="HH:MM")
    end: str = Field(description="HH:MM")
    role: str | None = Field(default=None)


class NotificationCopy(BaseModel):
    """Push copy returned by the copy generator."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=50, description="Push title")
    body: str = Field(min_length=1, max_length=150, description="One-line body")

    @classmethod
    def fallback(cls) -> "NotificationCopy":
        """Fixed copy used when generation output is unusable."""
        return cls(title=FALLBACK_TITLE, body=FALLBACK_BODY)


class NotificationPayload(BaseModel):
    """Everything sent to one user for one sweep."""

    user_id: str
    user_name: str
    old_shifts: list[ShiftSummary] = Field(default_factory=list)
    new_shifts: list[ShiftSummary] = Field(default_factory=list)
    title: str
    body: str
    change_ids: list[str] = Field(default_factory=list)
    channels: list[str] = Field(
        default_factory=list, description="Channels the payload was delivered on"
    )


class SweepResult(BaseModel):
    """Outcome of one notification sweep."""

    processed: int = Field(
        default=0, description="Change records claimed and handled this sweep"
    )
    claimed: int = Field(default=0, description="Change records this sweep claimed")
    skipped_no_channel: int = Field(
        default=0,
        description="Processed records whose user has no enabled or reachable channel",
    )
    failed_users: list[str] = Field(
        default_factory=list, description="Users whose claims were released"
    )
    payloads: list[NotificationPayload] = Field(default_factory=list)
