"""Unit tests for booking date-range conflict detection."""
from dataclasses import dataclass
from datetime import date, timedelta

from common.conflicts import Conflict, NoConflict, check_conflict, conflicting_fields, ranges_overlap

SPOT_ID = 7


@dataclass
class FakeBooking:
    id: int
    start_date: date
    end_date: date
    spot_id: int = SPOT_ID


def d(day: int) -> date:
    return date(2024, 7, 1) + timedelta(days=day - 1)


class TestScenarios:
    """The documented booking scenarios."""

    def test_later_stay_does_not_conflict(self):
        existing = [FakeBooking(1, d(1), d(5))]
        assert check_conflict(SPOT_ID, d(10), d(12), existing) == NoConflict()

    def test_start_inside_existing_conflicts(self):
        existing = [FakeBooking(1, d(1), d(5))]
        assert check_conflict(SPOT_ID, d(3), d(10), existing) == Conflict(conflicting_booking_ids=(1,))

    def test_containing_stay_conflicts(self):
        existing = [FakeBooking(4, d(5), d(10))]
        assert check_conflict(SPOT_ID, d(1), d(20), existing) == Conflict(conflicting_booking_ids=(4,))

    def test_no_existing_bookings(self):
        assert check_conflict(SPOT_ID, d(1), d(1), []) == NoConflict()
        assert check_conflict(SPOT_ID, d(1), d(30), []) == NoConflict()


class TestBoundaries:
    """Inclusive bounds at day granularity."""

    def test_touching_end_conflicts(self):
        existing = [FakeBooking(1, d(10), d(12))]
        assert isinstance(check_conflict(SPOT_ID, d(5), d(10), existing), Conflict)

    def test_touching_start_conflicts(self):
        existing = [FakeBooking(1, d(10), d(12))]
        assert isinstance(check_conflict(SPOT_ID, d(12), d(14), existing), Conflict)

    def test_day_before_is_free(self):
        existing = [FakeBooking(1, d(10), d(12))]
        assert check_conflict(SPOT_ID, d(5), d(9), existing) == NoConflict()
        assert check_conflict(SPOT_ID, d(13), d(15), existing) == NoConflict()

    def test_single_day_stays(self):
        existing = [FakeBooking(1, d(10), d(10))]
        assert isinstance(check_conflict(SPOT_ID, d(10), d(10), existing), Conflict)
        assert check_conflict(SPOT_ID, d(11), d(11), existing) == NoConflict()


class TestCheckConflict:
    def test_reports_every_overlapping_booking_in_order(self):
        existing = [
            FakeBooking(3, d(1), d(2)),
            FakeBooking(1, d(4), d(6)),
            FakeBooking(2, d(8), d(9)),
        ]
        result = check_conflict(SPOT_ID, d(2), d(8), existing)
        assert result == Conflict(conflicting_booking_ids=(3, 1, 2))

    def test_other_spots_are_ignored(self):
        existing = [FakeBooking(1, d(1), d(5), spot_id=SPOT_ID + 1)]
        assert check_conflict(SPOT_ID, d(1), d(5), existing) == NoConflict()

    def test_repeated_calls_agree(self):
        existing = [FakeBooking(1, d(3), d(6)), FakeBooking(2, d(10), d(11))]
        first = check_conflict(SPOT_ID, d(5), d(10), existing)
        second = check_conflict(SPOT_ID, d(5), d(10), existing)
        assert first == second == Conflict(conflicting_booking_ids=(1, 2))

    def test_matches_calendar_day_intersection(self):
        """Conflict exactly when the two stays share a calendar day."""

        existing_start, existing_end = d(6), d(9)
        existing = [FakeBooking(1, existing_start, existing_end)]
        booked_days = {existing_start + timedelta(days=n) for n in range((existing_end - existing_start).days + 1)}
        for start in range(1, 15):
            for end in range(start, 15):
                proposed_days = {d(day) for day in range(start, end + 1)}
                expected = bool(proposed_days & booked_days)
                result = check_conflict(SPOT_ID, d(start), d(end), existing)
                assert isinstance(result, Conflict) is expected, (start, end)


class TestRangesOverlap:
    def test_symmetric(self):
        assert ranges_overlap(d(1), d(5), d(5), d(8))
        assert ranges_overlap(d(5), d(8), d(1), d(5))
        assert not ranges_overlap(d(1), d(4), d(5), d(8))
        assert not ranges_overlap(d(5), d(8), d(1), d(4))


class TestConflictingFields:
    def test_start_inside(self):
        errors = conflicting_fields(d(3), d(10), [FakeBooking(1, d(1), d(5))])
        assert errors == {"startDate": "Start date conflicts with an existing booking"}

    def test_end_inside(self):
        errors = conflicting_fields(d(1), d(6), [FakeBooking(1, d(5), d(10))])
        assert errors == {"endDate": "End date conflicts with an existing booking"}

    def test_contained_flags_both(self):
        errors = conflicting_fields(d(6), d(7), [FakeBooking(1, d(5), d(10))])
        assert set(errors) == {"startDate", "endDate"}

    def test_containing_flags_both(self):
        errors = conflicting_fields(d(1), d(20), [FakeBooking(1, d(5), d(10))])
        assert set(errors) == {"startDate", "endDate"}

    def test_non_overlapping_bookings_ignored(self):
        assert conflicting_fields(d(1), d(3), [FakeBooking(1, d(5), d(10))]) == {}
