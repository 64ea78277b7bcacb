"""Domain errors and the JSON handler that renders them for every service."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class MarketplaceError(Exception):
    """Base class for errors surfaced to API callers as-is."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Bad Request"

    def __init__(self, message: Optional[str] = None, errors: Optional[Dict[str, str]] = None) -> None:
        self.message = message or self.message
        self.errors = dict(errors or {})
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload: dict = {"message": self.message}
        if self.errors:
            payload["errors"] = self.errors
        return payload


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource couldn't be found"


class ForbiddenError(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Forbidden"


class ConflictError(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    message = "Conflict"


class BookingConflictError(ConflictError):
    message = "Sorry, this spot is already booked for the specified dates"

    def __init__(self, conflicting_booking_ids: Iterable[int], errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(errors=errors)
        self.conflicting_booking_ids = sorted(conflicting_booking_ids)

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["conflictingBookingIds"] = self.conflicting_booking_ids
        return payload


class InvalidDateRangeError(MarketplaceError):
    message = "Bad Request"

    def __init__(self) -> None:
        super().__init__(errors={"endDate": "endDate cannot come before startDate"})


def marketplace_error_handler(_: Request, exc: MarketplaceError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def apply_error_handlers(app: FastAPI) -> None:
    """Render every :class:`MarketplaceError` raised by a route as JSON."""

    app.add_exception_handler(MarketplaceError, marketplace_error_handler)
