"""Week anchoring helpers.

Rosters are stored per (venue, week) where the week is identified by
its Monday. Week hints from uploaders may be ISO dates or free text
("27/10", "next monday"), parsed with dateparser.
"""

from datetime import date, datetime, timedelta

import dateparser


def week_start(day: date) -> date:
    """Return the Monday of the week containing ``day``.

    Examples:
        >>> week_start(date(2024, 1, 3))
        datetime.date(2024, 1, 1)
        >>> week_start(date(2024, 1, 7))  # Sunday belongs to the prior Monday
        datetime.date(2024, 1, 1)
    """
    return day - timedelta(days=day.weekday())


def parse_week_hint(raw_hint: str | None, reference: datetime) -> date | None:
    """Parse a week hint into the Monday it refers to.

    Args:
        raw_hint: ISO date or natural language date, or None
        reference: Reference point for relative expressions

    Returns:
        Monday of the hinted week, or None if no hint was given

    Raises:
        ValueError: If a hint was given but cannot be parsed
    """
    if raw_hint is None or not raw_hint.strip():
        return None

    try:
        return week_start(date.fromisoformat(raw_hint.strip()))
    except ValueError:
        pass

    settings: dict = {
        "RELATIVE_BASE": reference,
        "PREFER_DAY_OF_MONTH": "first",
        "DATE_ORDER": "DMY",
        "RETURN_AS_TIMEZONE_AWARE": False,
    }
    parsed = dateparser.parse(raw_hint, settings=settings)
    if parsed is None:
        raise ValueError(f"Unrecognised week hint: {raw_hint!r}")
    return week_start(parsed.date())
