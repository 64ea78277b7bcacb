"""Aggregates attached to spot payloads: ratings and preview images."""
from __future__ import annotations

from typing import Dict, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from .cache import SimpleTTLCache
from .config import get_settings
from .models import Review, Spot, SpotImage
from .schemas import SpotSummary

settings = get_settings()
spot_rating_cache: SimpleTTLCache[Dict[str, Optional[float]]] = SimpleTTLCache(ttl=settings.spot_cache_ttl)


def _rating_key(spot_id: int) -> str:
    return f"spot-rating:{spot_id}"


def average_stars(stars: Iterable[int]) -> Optional[float]:
    values = list(stars)
    if not values:
        return None
    return sum(values) / len(values)


def rating_summary(db: Session, spot_id: int, force_refresh: bool = False) -> Dict[str, Optional[float]]:
    """Review count and mean stars for one spot, served from the TTL cache when fresh."""

    def compute() -> Dict[str, Optional[float]]:
        stars = [row.stars for row in db.query(Review.stars).filter(Review.spot_id == spot_id)]
        return {"num_reviews": len(stars), "avg_star_rating": average_stars(stars)}

    return spot_rating_cache.get_or_set(_rating_key(spot_id), compute, refresh=force_refresh)


def invalidate_spot_rating(spot_id: int) -> None:
    spot_rating_cache.pop(_rating_key(spot_id))


def average_ratings(db: Session, spot_ids: Iterable[int]) -> Dict[int, float]:
    ids = list(spot_ids)
    if not ids:
        return {}
    rows = (
        db.query(Review.spot_id, func.avg(Review.stars).label("avg_rating"))
        .filter(Review.spot_id.in_(ids))
        .group_by(Review.spot_id)
        .all()
    )
    return {spot_id: float(avg_rating) for spot_id, avg_rating in rows}


def preview_images(db: Session, spot_ids: Iterable[int]) -> Dict[int, str]:
    """Latest preview image url per spot."""

    ids = list(spot_ids)
    if not ids:
        return {}
    rows = (
        db.query(SpotImage.spot_id, SpotImage.url)
        .filter(SpotImage.spot_id.in_(ids), SpotImage.preview.is_(True))
        .order_by(SpotImage.created_at.desc(), SpotImage.id.desc())
        .all()
    )
    previews: Dict[int, str] = {}
    for spot_id, url in rows:
        previews.setdefault(spot_id, url)
    return previews


def spot_summary(spot: Spot, previews: Dict[int, str]) -> SpotSummary:
    summary = SpotSummary.model_validate(spot)
    return summary.model_copy(update={"preview_image": previews.get(spot.id)})
