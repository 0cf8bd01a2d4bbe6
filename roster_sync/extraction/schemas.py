"""Schemas for roster extraction.

Two layers live here:
- LLM output schemas (RawTable, ExtractedShift, ExtractedShifts) that
  mirror what the model is asked to return. Times and dates are raw
  strings because the model echoes what it read.
- CanonicalShift, the validated domain record handed to the identity
  resolver. Conversion from ExtractedShift is the validation boundary.
"""

import datetime as dt
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TIME_PATTERN = re.compile(
    r"^(?P<hour>\d{1,2}):?(?P<minute>\d{2})?(?P<meridiem>am|pm|a|p)?$"
)


def parse_time_of_day(value: str | dt.time) -> dt.time:
    """Normalize a roster time cell to a time of day.

    Accepts "9", "9am", "9:30pm", "0900", "09:00" and "17:00".

    Args:
        value: Raw time string or an existing time

    Returns:
        Parsed time (minute precision)

    Raises:
        ValueError: If the string is not a recognisable time
    """
    if isinstance(value, dt.time):
        return value.replace(second=0, microsecond=0)

    cleaned = str(value).strip().lower().replace(" ", "").replace(".", "")
    # "09:00:00" from ISO-style output
    if re.fullmatch(r"\d{2}:\d{2}:\d{2}", cleaned):
        cleaned = cleaned[:5]

    match = _TIME_PATTERN.match(cleaned)
    if not match:
        raise ValueError(f"Unrecognised time: {value!r}")

    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    meridiem = match.group("meridiem")

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValueError(f"Hour out of range for 12-hour time: {value!r}")
        if meridiem.startswith("p") and hour != 12:
            hour += 12
        elif meridiem.startswith("a") and hour == 12:
            hour = 0

    if hour > 23 or minute > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return dt.time(hour, minute)


class RawTable(BaseModel):
    """Table of cells read from a roster image, before interpretation."""

    columns: list[str] = Field(description="Column headers as printed")
    rows: list[dict[str, str]] = Field(
        default_factory=list,
        description="One mapping per table row, column header -> cell text. "
        "Blank cells are empty strings.",
    )


class ExtractedShift(BaseModel):
    """Schema for LLM normalization of a single shift."""

    employee_name: str = Field(description="Employee name exactly as written")
    role: str | None = Field(default=None, description="Role or station, if given")
    date: str = Field(description="Shift date as YYYY-MM-DD")
    start_time: str = Field(description="Start time as HH:mm (24-hour)")
    end_time: str = Field(description="End time as HH:mm (24-hour)")
    break_min: int | None = Field(default=None, description="Unpaid break in minutes")
    notes: str | None = Field(default=None, description="Free-text notes")


class ExtractedShifts(BaseModel):
    """Container for the normalizer's emitted shifts."""

    items: list[ExtractedShift] = Field(
        default_factory=list,
        description="Canonical list of shifts",
    )


class CanonicalShift(BaseModel):
    """A normalized schedule entry prior to identity resolution.

    Immutable once created.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    employee_name: str = Field(min_length=1, description="Name as written on roster")
    role: str | None = Field(default=None, description="Role tag")
    date: dt.date = Field(description="Shift date")
    start_time: dt.time = Field(description="Start time of day")
    end_time: dt.time = Field(description="End time of day")
    break_minutes: int | None = Field(default=None, ge=0, description="Break length")
    notes: str | None = Field(default=None, description="Free-text notes")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize_time(cls, value: str | dt.time) -> dt.time:
        return parse_time_of_day(value)

    @field_validator("role", "notes", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_extracted(cls, item: ExtractedShift) -> "CanonicalShift":
        """Validate an LLM-emitted shift into the domain record.

        Args:
            item: Shift as emitted by the normalizer model

        Returns:
            CanonicalShift

        Raises:
            pydantic.ValidationError: If any field is unusable
        """
        return cls(
            employee_name=item.employee_name,
            role=item.role,
            date=item.date,
            start_time=item.start_time,
            end_time=item.end_time,
            break_minutes=item.break_min,
            notes=item.notes,
        )
