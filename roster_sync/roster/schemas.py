"""Roster versioning schemas.

A roster version is an immutable, numbered snapshot of one venue's
schedule for one week. Shift changes describe how a user's shifts moved
between two consecutive versions and carry the notification claim.
"""

import datetime as dt
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class ChangeType(str, Enum):
    """How a user's shift moved between versions."""

    INSERTED = "inserted"
    CHANGED = "changed"
    REMOVED = "removed"


class ResolvedShift(BaseModel):
    """A match result persisted as part of a roster version."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id, description="Stable shift id")
    roster_version_id: str = Field(description="Owning roster version")
    identity_id: str | None = Field(default=None, description="Matched user, if any")
    employee_name: str = Field(description="Name as written on the roster")
    role: str | None = Field(default=None)
    date: dt.date = Field(description="Shift date")
    start_time: dt.time
    end_time: dt.time
    break_minutes: int = Field(default=0, ge=0)
    notes: str | None = Field(default=None)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def slot_key(self) -> tuple[str | None, dt.date]:
        """Identity of a recurring shift slot: (user, date)."""
        return (self.identity_id, self.date)

    @property
    def comparable(self) -> tuple[dt.time, dt.time, int, str | None]:
        """Fields whose difference makes a slot 'changed'."""
        return (self.start_time, self.end_time, self.break_minutes, self.role)


class RosterVersion(BaseModel):
    """Numbered snapshot of a venue's week.

    For a fixed (venue_id, week_start_date), version numbers run 1, 2, 3...
    without gaps; the highest is current.
    """

    id: str = Field(default_factory=_new_id)
    venue_id: str
    week_start_date: dt.date = Field(description="Monday of the roster week")
    version_number: int = Field(ge=1)
    shifts: list[ResolvedShift] = Field(default_factory=list)
    source_file_url: str | None = Field(default=None)
    source_fingerprint: str | None = Field(
        default=None, description="sha256 of the uploaded file"
    )
    uploaded_by: str | None = Field(default=None)
    created_at: dt.datetime = Field(default_factory=_utcnow)


class ShiftChange(BaseModel):
    """One user's shift transition between two roster versions.

    notified_at stays None until a notification worker claims the record;
    once set the record is terminal.
    """

    id: str = Field(default_factory=_new_id)
    user_id: str
    change_type: ChangeType
    old_shift_id: str | None = Field(default=None)
    new_shift_id: str | None = Field(default=None)
    venue_id: str
    roster_version_id: str | None = Field(default=None)
    created_at: dt.datetime = Field(default_factory=_utcnow)
    notified_at: dt.datetime | None = Field(default=None)

    @property
    def is_claimed(self) -> bool:
        return self.notified_at is not None


class DiffResult(BaseModel):
    """Classification of a roster version against its predecessor."""

    changes: list[ShiftChange] = Field(default_factory=list)
    inserted: int = 0
    changed: int = 0
    unchanged: int = 0
    removed: int = 0

    def summary(self) -> dict[str, int]:
        """Counts only, for API responses and logs."""
        return {
            "inserted": self.inserted,
            "changed": self.changed,
            "unchanged": self.unchanged,
            "removed": self.removed,
        }
