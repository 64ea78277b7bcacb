"""Date-range conflict detection for spot bookings.

Every overlap decision in the services goes through :func:`ranges_overlap`.
Ranges are closed on both ends at calendar-date granularity, so a booking
ending on the 5th and another starting on the 5th collide.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Protocol, Tuple, Union


class BookedRange(Protocol):
    id: int
    spot_id: int
    start_date: date
    end_date: date


@dataclass(frozen=True)
class NoConflict:
    pass


@dataclass(frozen=True)
class Conflict:
    conflicting_booking_ids: Tuple[int, ...]


ConflictResult = Union[NoConflict, Conflict]


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return not (a_end < b_start or a_start > b_end)


def _within(day: date, booking: BookedRange) -> bool:
    return booking.start_date <= day <= booking.end_date


def check_conflict(
    spot_id: int,
    start_date: date,
    end_date: date,
    existing_bookings: Iterable[BookedRange],
) -> ConflictResult:
    """Compare a proposed stay against the bookings already held for ``spot_id``.

    Bookings belonging to another spot never conflict. The result lists the
    overlapping booking ids in the order they were supplied.
    """

    conflicting = tuple(
        booking.id
        for booking in existing_bookings
        if booking.spot_id == spot_id
        and ranges_overlap(start_date, end_date, booking.start_date, booking.end_date)
    )
    if conflicting:
        return Conflict(conflicting_booking_ids=conflicting)
    return NoConflict()


def conflicting_fields(start_date: date, end_date: date, bookings: Iterable[BookedRange]) -> Dict[str, str]:
    """Name the request fields that land inside an existing booking.

    A proposed stay that swallows a booking whole flags both fields.
    """

    errors: Dict[str, str] = {}
    for booking in bookings:
        if not ranges_overlap(start_date, end_date, booking.start_date, booking.end_date):
            continue
        start_inside = _within(start_date, booking)
        end_inside = _within(end_date, booking)
        if start_inside or not end_inside:
            errors["startDate"] = "Start date conflicts with an existing booking"
        if end_inside or not start_inside:
            errors["endDate"] = "End date conflicts with an existing booking"
    return errors
