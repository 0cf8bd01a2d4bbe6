"""Roster version differ.

Classifies every shift of the current roster version against the
immediately preceding version of the same venue and week.

Slots are keyed by (identity_id, date), never by row order. Within a
slot, identical shifts are paired first so an untouched shift is never
reported as changed; the rest pair earliest start first. Anything left
over on either side becomes a separate insert or removal, so
double-booked shifts are never dropped. Unmatched shifts have no user to key on and
are counted as inserted/removed individually without change records.
"""

import datetime as dt
from collections import defaultdict
from collections.abc import Iterable

import structlog

from roster_sync.roster.schemas import (
    ChangeType,
    DiffResult,
    ResolvedShift,
    RosterVersion,
    ShiftChange,
)

logger = structlog.get_logger()

SlotKey = tuple[str | None, dt.date]


def _pairing_order(shift: ResolvedShift) -> tuple:
    return (shift.start_time, shift.end_time, shift.id)


def _group_by_slot(
    shifts: Iterable[ResolvedShift],
) -> dict[SlotKey, list[ResolvedShift]]:
    groups: dict[SlotKey, list[ResolvedShift]] = defaultdict(list)
    for shift in shifts:
        groups[shift.slot_key].append(shift)
    for group in groups.values():
        group.sort(key=_pairing_order)
    return groups


def _pair_slot(
    old_group: list[ResolvedShift],
    new_group: list[ResolvedShift],
) -> tuple[dict[str, ResolvedShift | None], list[ResolvedShift]]:
    """Pair one slot's shifts across versions.

    Returns:
        (new shift id -> paired old shift or None, unpaired old shifts)
    """
    pairs: dict[str, ResolvedShift | None] = {}
    remaining = list(old_group)

    for new in new_group:
        same = next((o for o in remaining if o.comparable == new.comparable), None)
        if same is not None:
            pairs[new.id] = same
            remaining.remove(same)

    for new in new_group:
        if new.id not in pairs:
            pairs[new.id] = remaining.pop(0) if remaining else None

    return pairs, remaining


def diff_versions(
    previous: RosterVersion | None,
    current: RosterVersion,
) -> DiffResult:
    """Compute the change set between two roster versions.

    Args:
        previous: Prior version of the same venue/week, or None
        current: Newly resolved version

    Returns:
        DiffResult with insert/change/unchanged/remove counts and one
        ShiftChange per user-attributable insert, change or removal
    """
    result = DiffResult()

    def record(
        change_type: ChangeType,
        user_id: str,
        old: ResolvedShift | None = None,
        new: ResolvedShift | None = None,
    ) -> None:
        result.changes.append(
            ShiftChange(
                user_id=user_id,
                change_type=change_type,
                old_shift_id=old.id if old else None,
                new_shift_id=new.id if new else None,
                venue_id=current.venue_id,
                roster_version_id=current.id,
            )
        )

    previous_shifts = previous.shifts if previous else []
    current_matched = [s for s in current.shifts if s.identity_id is not None]
    previous_matched = [s for s in previous_shifts if s.identity_id is not None]

    result.inserted += len(current.shifts) - len(current_matched)
    result.removed += len(previous_shifts) - len(previous_matched)

    previous_groups = _group_by_slot(previous_matched)
    current_groups = _group_by_slot(current_matched)

    paired_with: dict[str, ResolvedShift | None] = {}
    removed_ids: set[str] = set()
    for key in previous_groups.keys() | current_groups.keys():
        pairs, leftover = _pair_slot(
            previous_groups.get(key, []), current_groups.get(key, [])
        )
        paired_with.update(pairs)
        removed_ids.update(old.id for old in leftover)

    # Current-version order for inserts and changes
    for new in current_matched:
        old = paired_with[new.id]
        if old is None:
            result.inserted += 1
            record(ChangeType.INSERTED, new.identity_id, new=new)
        elif old.comparable == new.comparable:
            result.unchanged += 1
        else:
            result.changed += 1
            record(ChangeType.CHANGED, new.identity_id, old=old, new=new)

    # Previous-version order for removals
    for old in previous_matched:
        if old.id in removed_ids:
            result.removed += 1
            record(ChangeType.REMOVED, old.identity_id, old=old)

    logger.info(
        "roster diff computed",
        venue_id=current.venue_id,
        version=current.version_number,
        previous_version=previous.version_number if previous else None,
        **result.summary(),
    )
    return result
