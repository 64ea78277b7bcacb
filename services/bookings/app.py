from contextlib import asynccontextmanager
from datetime import date

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from common.bookings import bookings_for_spot, create_booking, get_spot_or_404, spot_availability
from common.config import get_settings
from common.conflicts import Conflict
from common.database import Base, engine, get_db
from common.dependencies import get_current_active_user
from common.errors import apply_error_handlers
from common.listing import preview_images, spot_summary
from common.logging_middleware import add_audit_middleware
from common.models import Booking, User
from common.rate_limit import apply_rate_limiter, limiter
from common.schemas import (
    Availability,
    BookingCreate,
    BookingPublic,
    BookingRead,
    BookingWithSpot,
    BookingWithUser,
    SpotBookingList,
    UserBookingList,
)

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Bookings Service", version="0.3.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    apply_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "bookings")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "bookings"}


@app.get("/bookings/current", response_model=UserBookingList)
@limiter.limit("30/minute")
def list_my_bookings(
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> UserBookingList:
    bookings = (
        db.query(Booking)
        .filter(Booking.user_id == current_user.id)
        .order_by(Booking.start_date)
        .all()
    )
    previews = preview_images(db, {booking.spot_id for booking in bookings})
    return UserBookingList(
        bookings=[
            BookingWithSpot(
                **BookingRead.model_validate(booking).model_dump(),
                spot=spot_summary(booking.spot, previews),
            )
            for booking in bookings
        ]
    )


@app.get("/spots/{spot_id}/bookings", response_model=SpotBookingList)
@limiter.limit("30/minute")
def list_spot_bookings(
    request: Request,
    spot_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> SpotBookingList:
    spot = get_spot_or_404(db, spot_id)
    bookings = bookings_for_spot(db, spot_id)
    if spot.owner_id == current_user.id:
        return SpotBookingList(bookings=[BookingWithUser.model_validate(booking) for booking in bookings])
    return SpotBookingList(bookings=[BookingPublic.model_validate(booking) for booking in bookings])


@app.post("/spots/{spot_id}/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def book_spot(
    request: Request,
    spot_id: int,
    booking_in: BookingCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Booking:
    return create_booking(db, spot_id, current_user.id, booking_in.start_date, booking_in.end_date)


@app.get("/spots/{spot_id}/availability", response_model=Availability)
@limiter.limit("40/minute")
def check_availability(
    request: Request,
    spot_id: int,
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    db: Session = Depends(get_db),
) -> Availability:
    result = spot_availability(db, spot_id, start_date, end_date)
    conflicting = list(result.conflicting_booking_ids) if isinstance(result, Conflict) else []
    return Availability(
        spot_id=spot_id,
        start_date=start_date,
        end_date=end_date,
        available=not conflicting,
        conflicting_booking_ids=conflicting,
    )
