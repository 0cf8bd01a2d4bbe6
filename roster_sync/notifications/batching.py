"""Grouping of pending change records into per-user batches."""

import datetime as dt
from collections.abc import Iterable

from roster_sync.notifications.schemas import ShiftSummary
from roster_sync.roster.schemas import ResolvedShift, ShiftChange


def build_batches(
    changes: Iterable[ShiftChange],
    window: dt.timedelta,
    now: dt.datetime,
) -> dict[str, list[ShiftChange]]:
    """Group unclaimed, recent changes by user.

    Args:
        changes: Candidate change records
        window: How far back from ``now`` a change may have been created
        now: Current time (timezone-aware)

    Returns:
        Mapping of user_id -> changes, in first-seen user order with each
        user's changes in input order
    """
    since = now - window
    batches: dict[str, list[ShiftChange]] = {}
    for change in changes:
        if change.is_claimed or change.created_at < since:
            continue
        batches.setdefault(change.user_id, []).append(change)
    return batches


def summarize_shift(shift: ResolvedShift) -> ShiftSummary:
    """Render a stored shift as a day/time/role summary."""
    return ShiftSummary(
        date=shift.date.isoformat(),
        start=shift.start_time.strftime("%H:%M"),
        end=shift.end_time.strftime("%H:%M"),
        role=shift.role,
    )
