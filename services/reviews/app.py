from contextlib import asynccontextmanager
from datetime import datetime
import html

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.bookings import get_spot_or_404
from common.config import get_settings
from common.database import Base, engine, get_db
from common.dependencies import get_current_active_user
from common.errors import ConflictError, ForbiddenError, NotFoundError, apply_error_handlers
from common.listing import invalidate_spot_rating, preview_images, spot_summary
from common.logging_middleware import add_audit_middleware
from common.models import Review, ReviewImage, User
from common.rate_limit import apply_rate_limiter, limiter
from common.schemas import (
    ReviewCreate,
    ReviewImageCreate,
    ReviewImageRead,
    ReviewList,
    ReviewRead,
    ReviewUpdate,
    ReviewWithDetails,
    ReviewWithSpot,
    UserReviewList,
)

settings = get_settings()

MAX_REVIEW_IMAGES = 10


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Reviews Service", version="0.3.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    apply_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "reviews")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "reviews"}


def _sanitize(text: str) -> str:
    stripped = text.strip()
    return html.escape(stripped)


def _get_own_review(db: Session, review_id: int, user: User) -> Review:
    review = db.query(Review).filter(Review.id == review_id).first()
    if not review:
        raise NotFoundError("Review couldn't be found")
    if review.user_id != user.id:
        raise ForbiddenError()
    return review


def _insert_review(db: Session, review: Review) -> Review:
    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request for the same user and spot won the unique constraint.
        db.rollback()
        raise ConflictError("User already has a review for this spot")
    db.refresh(review)
    return review


@app.get("/spots/{spot_id}/reviews", response_model=ReviewList)
@limiter.limit("60/minute")
def spot_reviews(request: Request, spot_id: int, db: Session = Depends(get_db)) -> ReviewList:
    get_spot_or_404(db, spot_id)
    reviews = db.query(Review).filter(Review.spot_id == spot_id).order_by(Review.created_at.desc()).all()
    return ReviewList(reviews=[ReviewWithDetails.model_validate(review) for review in reviews])


@app.post("/spots/{spot_id}/reviews", response_model=ReviewRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def submit_review(
    request: Request,
    spot_id: int,
    review_in: ReviewCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Review:
    get_spot_or_404(db, spot_id)
    already_reviewed = (
        db.query(Review).filter(Review.spot_id == spot_id, Review.user_id == current_user.id).first()
    )
    if already_reviewed:
        raise ConflictError("User already has a review for this spot")

    review = Review(
        user_id=current_user.id,
        spot_id=spot_id,
        review=_sanitize(review_in.review),
        stars=review_in.stars,
    )
    _insert_review(db, review)
    invalidate_spot_rating(spot_id)
    return review


@app.get("/reviews/current", response_model=UserReviewList)
@limiter.limit("30/minute")
def my_reviews(
    request: Request,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> UserReviewList:
    reviews = db.query(Review).filter(Review.user_id == current_user.id).order_by(Review.created_at.desc()).all()
    previews = preview_images(db, {review.spot_id for review in reviews})
    return UserReviewList(
        reviews=[
            ReviewWithSpot(
                **ReviewWithDetails.model_validate(review).model_dump(),
                spot=spot_summary(review.spot, previews),
            )
            for review in reviews
        ]
    )


@app.put("/reviews/{review_id}", response_model=ReviewRead)
@limiter.limit("20/minute")
def update_review(
    request: Request,
    review_id: int,
    review_update: ReviewUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> Review:
    review = _get_own_review(db, review_id, current_user)

    data = review_update.model_dump(exclude_unset=True)
    if data.get("review"):
        data["review"] = _sanitize(data["review"])

    for key, value in data.items():
        if value is not None:
            setattr(review, key, value)
    review.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(review)
    invalidate_spot_rating(review.spot_id)
    return review


@app.delete("/reviews/{review_id}")
@limiter.limit("20/minute")
def delete_review(
    request: Request,
    review_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    review = _get_own_review(db, review_id, current_user)
    spot_id = review.spot_id
    db.delete(review)
    db.commit()
    invalidate_spot_rating(spot_id)
    return {"message": "Successfully deleted"}


@app.post("/reviews/{review_id}/images", response_model=ReviewImageRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def add_review_image(
    request: Request,
    review_id: int,
    image_in: ReviewImageCreate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db),
) -> ReviewImage:
    review = _get_own_review(db, review_id, current_user)
    if len(review.images) >= MAX_REVIEW_IMAGES:
        raise ForbiddenError("Maximum number of images for this resource was reached")

    image = ReviewImage(review_id=review.id, url=image_in.url)
    db.add(image)
    db.commit()
    db.refresh(image)
    return image
