"""Booking creation against the shared store, serialized by its transaction."""
from __future__ import annotations

import logging
from datetime import date
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .conflicts import Conflict, ConflictResult, check_conflict, conflicting_fields
from .errors import BookingConflictError, ForbiddenError, InvalidDateRangeError, NotFoundError
from .models import Booking, Spot

logger = logging.getLogger(__name__)


def get_spot_or_404(db: Session, spot_id: int, for_update: bool = False) -> Spot:
    query = db.query(Spot).filter(Spot.id == spot_id)
    if for_update:
        query = query.with_for_update()
    spot = query.first()
    if spot is None:
        raise NotFoundError("Spot couldn't be found")
    return spot


def bookings_for_spot(db: Session, spot_id: int) -> List[Booking]:
    return db.query(Booking).filter(Booking.spot_id == spot_id).order_by(Booking.start_date).all()


def spot_availability(db: Session, spot_id: int, start_date: date, end_date: date) -> ConflictResult:
    if start_date > end_date:
        raise InvalidDateRangeError()
    get_spot_or_404(db, spot_id)
    return check_conflict(spot_id, start_date, end_date, bookings_for_spot(db, spot_id))


def _reject(spot_id: int, start_date: date, end_date: date, existing: List[Booking], result: Conflict) -> None:
    clashing = [booking for booking in existing if booking.id in result.conflicting_booking_ids]
    logger.info(
        "Rejected booking for spot %s (%s..%s): overlaps %s",
        spot_id,
        start_date,
        end_date,
        list(result.conflicting_booking_ids),
    )
    raise BookingConflictError(
        result.conflicting_booking_ids,
        errors=conflicting_fields(start_date, end_date, clashing),
    )


def create_booking(db: Session, spot_id: int, user_id: int, start_date: date, end_date: date) -> Booking:
    """Reserve ``spot_id`` for ``user_id`` over the closed range ``[start_date, end_date]``.

    The overlap check and the insert share one transaction. On SQLite it opens
    with ``BEGIN IMMEDIATE`` (see :mod:`common.database`); on PostgreSQL the
    spot row is held ``FOR UPDATE`` and the ``bookings_no_overlap`` exclusion
    constraint backs it up. Two racing requests for overlapping dates can never
    both be persisted.

    Raises:
        InvalidDateRangeError: ``start_date`` falls after ``end_date``.
        NotFoundError: the spot does not exist.
        ForbiddenError: the caller owns the spot.
        BookingConflictError: the range overlaps an existing booking.
    """

    if start_date > end_date:
        raise InvalidDateRangeError()

    try:
        spot = get_spot_or_404(db, spot_id, for_update=True)
        if spot.owner_id == user_id:
            raise ForbiddenError("Owners cannot book their own spot")

        existing = bookings_for_spot(db, spot_id)
        result = check_conflict(spot_id, start_date, end_date, existing)
        if isinstance(result, Conflict):
            _reject(spot_id, start_date, end_date, existing, result)

        booking = Booking(spot_id=spot_id, user_id=user_id, start_date=start_date, end_date=end_date)
        db.add(booking)
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = bookings_for_spot(db, spot_id)
        result = check_conflict(spot_id, start_date, end_date, existing)
        if isinstance(result, Conflict):
            _reject(spot_id, start_date, end_date, existing, result)
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info("Created booking %s for spot %s by user %s", booking.id, spot_id, user_id)
    return booking
