"""Tests for the roster version differ."""

from datetime import date, time

import pytest

from roster_sync.roster.differ import diff_versions
from roster_sync.roster.schemas import ChangeType, ResolvedShift, RosterVersion

MONDAY = date(2024, 1, 1)


def make_version(number: int, shifts: list[dict]) -> RosterVersion:
    version = RosterVersion(
        venue_id="venue-1", week_start_date=MONDAY, version_number=number
    )
    version.shifts = [
        ResolvedShift(
            roster_version_id=version.id,
            identity_id=s.get("identity_id", "U1"),
            employee_name=s.get("name", "Alex"),
            role=s.get("role"),
            date=s.get("date", MONDAY),
            start_time=s.get("start", time(9)),
            end_time=s.get("end", time(17)),
            break_minutes=s.get("break_minutes", 0),
        )
        for s in shifts
    ]
    return version


class TestDiffCounts:
    """Count properties of diff_versions."""

    def test_identical_shift_is_unchanged(self):
        """Same (user, date, times) yields unchanged=1 and no records."""
        previous = make_version(1, [{}])
        current = make_version(2, [{}])

        diff = diff_versions(previous, current)

        assert diff.summary() == {
            "inserted": 0,
            "changed": 0,
            "unchanged": 1,
            "removed": 0,
        }
        assert diff.changes == []

    def test_end_time_change_yields_one_changed_record(self):
        """A moved end time is one Changed record referencing both shifts."""
        previous = make_version(1, [{}])
        current = make_version(2, [{"end": time(18)}])

        diff = diff_versions(previous, current)

        assert diff.changed == 1
        assert diff.inserted == diff.unchanged == diff.removed == 0
        assert len(diff.changes) == 1
        change = diff.changes[0]
        assert change.change_type == ChangeType.CHANGED
        assert change.user_id == "U1"
        assert change.old_shift_id == previous.shifts[0].id
        assert change.new_shift_id == current.shifts[0].id
        assert change.roster_version_id == current.id
        assert change.venue_id == "venue-1"
        assert change.notified_at is None

    @pytest.mark.parametrize(
        "field,value",
        [("start", time(8)), ("break_minutes", 30), ("role", "Bar")],
    )
    def test_other_fields_count_as_changed(self, field, value):
        """Start time, break and role differences are changes."""
        diff = diff_versions(make_version(1, [{}]), make_version(2, [{field: value}]))

        assert diff.changed == 1

    def test_name_spelling_alone_is_not_a_change(self):
        """Slots are keyed by identity, not by the written name."""
        diff = diff_versions(
            make_version(1, [{"name": "Alex"}]),
            make_version(2, [{"name": "Alex B."}]),
        )

        assert diff.unchanged == 1

    def test_shift_only_in_previous_is_removed(self):
        """A slot missing from the current version is counted as removed."""
        previous = make_version(1, [{}, {"date": date(2024, 1, 2)}])
        current = make_version(2, [{}])

        diff = diff_versions(previous, current)

        assert diff.removed == 1
        assert diff.unchanged == 1
        removal = diff.changes[0]
        assert removal.change_type == ChangeType.REMOVED
        assert removal.old_shift_id == previous.shifts[1].id
        assert removal.new_shift_id is None

    def test_no_previous_version_inserts_everything(self):
        """First version: every shift is an insert."""
        current = make_version(
            1,
            [
                {"identity_id": f"U{i}", "date": date(2024, 1, i)}
                for i in range(1, 6)
            ],
        )

        diff = diff_versions(None, current)

        assert diff.summary() == {
            "inserted": 5,
            "changed": 0,
            "unchanged": 0,
            "removed": 0,
        }
        assert [c.change_type for c in diff.changes] == [ChangeType.INSERTED] * 5
        assert [c.new_shift_id for c in diff.changes] == [
            s.id for s in current.shifts
        ]

    def test_every_shift_is_accounted_for(self):
        """inserted + changed + unchanged == current shifts and
        changed + unchanged + removed == previous shifts."""
        previous = make_version(
            1,
            [
                {"identity_id": "U1"},
                {"identity_id": "U2"},
                {"identity_id": "U3"},
                {"identity_id": None, "name": "Ghost"},
            ],
        )
        current = make_version(
            2,
            [
                {"identity_id": "U1"},
                {"identity_id": "U2", "end": time(20)},
                {"identity_id": "U4"},
                {"identity_id": None, "name": "Stranger"},
            ],
        )

        diff = diff_versions(previous, current)

        assert diff.inserted + diff.changed + diff.unchanged == len(current.shifts)
        assert diff.changed + diff.unchanged + diff.removed == len(previous.shifts)


class TestSlotPairing:
    """Double-booked slots and unmatched shifts."""

    def test_double_booking_pairs_by_start_time(self):
        """Two shifts in one slot pair earliest-first with the previous ones."""
        previous = make_version(
            1,
            [
                {"start": time(17), "end": time(22)},
                {"start": time(7), "end": time(11)},
            ],
        )
        current = make_version(
            2,
            [
                {"start": time(7), "end": time(11)},
                {"start": time(17), "end": time(23)},
            ],
        )

        diff = diff_versions(previous, current)

        assert diff.unchanged == 1
        assert diff.changed == 1
        change = diff.changes[0]
        assert change.old_shift_id == previous.shifts[0].id
        assert change.new_shift_id == current.shifts[1].id

    def test_extra_shift_in_slot_is_inserted(self):
        """A second shift on the same day is an insert, not dropped."""
        previous = make_version(1, [{}])
        current = make_version(2, [{}, {"start": time(18), "end": time(22)}])

        diff = diff_versions(previous, current)

        assert diff.unchanged == 1
        assert diff.inserted == 1
        assert diff.changes[0].change_type == ChangeType.INSERTED
        assert diff.changes[0].new_shift_id == current.shifts[1].id

    def test_dropped_double_booking_is_removed(self):
        """Losing one of two same-day shifts removes the later one."""
        previous = make_version(1, [{}, {"start": time(18), "end": time(22)}])
        current = make_version(2, [{}])

        diff = diff_versions(previous, current)

        assert diff.unchanged == 1
        assert diff.removed == 1
        assert diff.changes[0].old_shift_id == previous.shifts[1].id

    def test_dropping_the_earlier_shift_removes_only_it(self):
        """The untouched afternoon shift pairs with itself, not the morning one."""
        previous = make_version(
            1,
            [
                {"start": time(9), "end": time(12)},
                {"start": time(14), "end": time(17)},
            ],
        )
        current = make_version(2, [{"start": time(14), "end": time(17)}])

        diff = diff_versions(previous, current)

        assert diff.summary() == {
            "inserted": 0,
            "changed": 0,
            "unchanged": 1,
            "removed": 1,
        }
        assert len(diff.changes) == 1
        assert diff.changes[0].change_type == ChangeType.REMOVED
        assert diff.changes[0].old_shift_id == previous.shifts[0].id

    def test_identical_shifts_pair_before_changed_ones(self):
        """A new early shift is an insert when the old one is still present."""
        previous = make_version(1, [{"start": time(14), "end": time(17)}])
        current = make_version(
            2,
            [
                {"start": time(8), "end": time(11)},
                {"start": time(14), "end": time(17)},
            ],
        )

        diff = diff_versions(previous, current)

        assert diff.unchanged == 1
        assert diff.inserted == 1
        assert diff.changed == 0
        assert diff.changes[0].new_shift_id == current.shifts[0].id

    def test_unmatched_shifts_are_counted_without_records(self):
        """Shifts with no identity have nobody to notify."""
        previous = make_version(1, [{"identity_id": None, "name": "Ghost"}])
        current = make_version(2, [{"identity_id": None, "name": "Ghost"}])

        diff = diff_versions(previous, current)

        assert diff.inserted == 1
        assert diff.removed == 1
        assert diff.changes == []

    def test_result_is_independent_of_row_order(self):
        """Reordering rows does not change the classification."""
        rows = [
            {"identity_id": "U1"},
            {"identity_id": "U2", "end": time(20)},
            {"identity_id": "U3", "date": date(2024, 1, 3)},
        ]
        previous = make_version(
            1, [{"identity_id": "U1"}, {"identity_id": "U2"}, {"identity_id": "U5"}]
        )

        forward = diff_versions(previous, make_version(2, rows))
        backward = diff_versions(previous, make_version(2, list(reversed(rows))))

        assert forward.summary() == backward.summary()
        assert sorted((c.user_id, c.change_type) for c in forward.changes) == sorted(
            (c.user_id, c.change_type) for c in backward.changes
        )
