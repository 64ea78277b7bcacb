from contextlib import asynccontextmanager
from typing import List, Optional

from circuitbreaker import circuit
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from common.bookings import get_spot_or_404
from common.config import get_settings
from common.database import Base, engine, get_db
from common.dependencies import get_current_active_user
from common.errors import ForbiddenError, apply_error_handlers
from common.listing import average_ratings, invalidate_spot_rating, preview_images, rating_summary
from common.logging_middleware import add_audit_middleware
from common.models import Spot, SpotImage, User
from common.rate_limit import apply_rate_limiter, limiter
from common.schemas import (
    OwnerRead,
    SpotCreate,
    SpotDetail,
    SpotImageCreate,
    SpotImageRead,
    SpotList,
    SpotListItem,
    SpotOwnedList,
    SpotRead,
    SpotUpdate,
)

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Spots Service", version="0.3.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    apply_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "spots")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "spots"}


def _ensure_owner(spot: Spot, user: User) -> None:
    if spot.owner_id != user.id:
        raise ForbiddenError()


def _list_items(db: Session, spots: List[Spot]) -> List[SpotListItem]:
    ids = [spot.id for spot in spots]
    ratings = average_ratings(db, ids)
    previews = preview_images(db, ids)
    return [
        SpotListItem.model_validate(spot).model_copy(
            update={"avg_rating": ratings.get(spot.id), "preview_image": previews.get(spot.id)}
        )
        for spot in spots
    ]


@app.get("/spots", response_model=SpotList)
@circuit(failure_threshold=5, recovery_timeout=60)
def list_spots(
    request: Request,
    page: int = Query(1, ge=1, le=10),
    size: int = Query(20, ge=1, le=20),
    min_lat: Optional[float] = Query(None, alias="minLat", ge=-90, le=90),
    max_lat: Optional[float] = Query(None, alias="maxLat", ge=-90, le=90),
    min_lng: Optional[float] = Query(None, alias="minLng", ge=-180, le=180),
    max_lng: Optional[float] = Query(None, alias="maxLng", ge=-180, le=180),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    db: Session = Depends(get_db),
) -> SpotList:
    query = db.query(Spot)
    if min_lat is not None:
        query = query.filter(Spot.lat >= min_lat)
    if max_lat is not None:
        query = query.filter(Spot.lat <= max_lat)
    if min_lng is not None:
        query = query.filter(Spot.lng >= min_lng)
    if max_lng is not None:
        query = query.filter(Spot.lng <= max_lng)
    if min_price is not None:
        query = query.filter(Spot.price >= min_price)
    if max_price is not None:
        query = query.filter(Spot.price <= max_price)

    spots = query.order_by(Spot.id).offset((page - 1) * size).limit(size).all()
    return SpotList(spots=_list_items(db, spots), page=page, size=size)


@app.get("/spots/current", response_model=SpotOwnedList)
@limiter.limit("30/minute")
def list_my_spots(
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> SpotOwnedList:
    spots = db.query(Spot).filter(Spot.owner_id == current_user.id).order_by(Spot.id).all()
    return SpotOwnedList(spots=_list_items(db, spots))


@app.get("/spots/{spot_id}", response_model=SpotDetail)
@limiter.limit("60/minute")
def get_spot(
    request: Request,
    spot_id: int,
    force_refresh: bool = False,
    db: Session = Depends(get_db),
) -> SpotDetail:
    """Spot detail with its rating summary.

    The summary is cached per process for ``spot_cache_ttl`` seconds. Reviews written through another
    process show up once the entry expires, or at once with ``force_refresh=true``.
    """
    spot = get_spot_or_404(db, spot_id)
    summary = rating_summary(db, spot_id, force_refresh=force_refresh)
    return SpotDetail(
        **SpotRead.model_validate(spot).model_dump(),
        num_reviews=summary["num_reviews"],
        avg_star_rating=summary["avg_star_rating"],
        images=[SpotImageRead.model_validate(image) for image in spot.images],
        owner=OwnerRead.model_validate(spot.owner),
    )


@app.post("/spots", response_model=SpotRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_spot(
    request: Request,
    spot_in: SpotCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Spot:
    spot = Spot(owner_id=current_user.id, **spot_in.model_dump())
    db.add(spot)
    db.commit()
    db.refresh(spot)
    return spot


@app.post("/spots/{spot_id}/images", response_model=SpotImageRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def add_spot_image(
    request: Request,
    spot_id: int,
    image_in: SpotImageCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> SpotImage:
    spot = get_spot_or_404(db, spot_id)
    _ensure_owner(spot, current_user)
    image = SpotImage(spot_id=spot.id, **image_in.model_dump())
    db.add(image)
    db.commit()
    db.refresh(image)
    return image


@app.put("/spots/{spot_id}", response_model=SpotRead)
@limiter.limit("15/minute")
def update_spot(
    request: Request,
    spot_id: int,
    spot_update: SpotUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Spot:
    spot = get_spot_or_404(db, spot_id)
    _ensure_owner(spot, current_user)

    update_data = spot_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(spot, key, value)
    db.commit()
    db.refresh(spot)
    return spot


@app.delete("/spots/{spot_id}")
@limiter.limit("15/minute")
def delete_spot(
    request: Request,
    spot_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    spot = get_spot_or_404(db, spot_id)
    _ensure_owner(spot, current_user)
    db.delete(spot)
    db.commit()
    invalidate_spot_rating(spot_id)
    return {"message": "Successfully deleted"}
