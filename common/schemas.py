"""Pydantic schemas shared across the microservices.

Attributes stay snake_case to match the ORM models; the JSON wire format is
camelCase through the alias generator on :class:`ApiModel`.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ReadModel(ApiModel):
    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserBase(ApiModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    username: str = Field(..., min_length=4, max_length=50)
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserUpdate(ApiModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8)


class UserRead(UserBase, ReadModel):
    id: int
    created_at: datetime


class UserSummary(ReadModel):
    id: int
    first_name: str
    last_name: str


class OwnerRead(UserSummary):
    username: str
    email: str


class SpotBase(ApiModel):
    address: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    name: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)


class SpotCreate(SpotBase):
    pass


class SpotUpdate(ApiModel):
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, min_length=1, max_length=100)
    country: Optional[str] = Field(None, min_length=1, max_length=100)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)


class SpotRead(SpotBase, ReadModel):
    id: int
    owner_id: int
    created_at: datetime
    updated_at: datetime


class SpotListItem(SpotRead):
    avg_rating: Optional[float] = None
    preview_image: Optional[str] = None


class SpotList(ApiModel):
    spots: List[SpotListItem] = Field(default_factory=list, alias="Spots")
    page: int
    size: int


class SpotOwnedList(ApiModel):
    spots: List[SpotListItem] = Field(default_factory=list, alias="Spots")


class SpotSummary(ReadModel):
    id: int
    owner_id: int
    address: str
    city: str
    state: str
    country: str
    lat: float
    lng: float
    name: str
    price: float
    preview_image: Optional[str] = None


class SpotImageCreate(ApiModel):
    url: str = Field(..., min_length=1, max_length=500)
    preview: bool = False


class SpotImageRead(ReadModel):
    id: int
    url: str
    preview: bool


class SpotDetail(SpotRead):
    num_reviews: int
    avg_star_rating: Optional[float] = None
    images: List[SpotImageRead] = Field(default_factory=list, alias="SpotImages")
    owner: OwnerRead = Field(..., alias="Owner")


class BookingCreate(ApiModel):
    start_date: date
    end_date: date


class BookingRead(ReadModel):
    id: int
    spot_id: int
    user_id: int
    start_date: date
    end_date: date
    created_at: datetime


class BookingPublic(ReadModel):
    spot_id: int
    start_date: date
    end_date: date


class BookingWithUser(BookingRead):
    user: UserSummary = Field(..., alias="User")


class BookingWithSpot(BookingRead):
    spot: SpotSummary = Field(..., alias="Spot")


class SpotBookingList(ApiModel):
    bookings: List[Union[BookingWithUser, BookingPublic]] = Field(
        default_factory=list, alias="Bookings"
    )


class UserBookingList(ApiModel):
    bookings: List[BookingWithSpot] = Field(default_factory=list, alias="Bookings")


class Availability(ApiModel):
    spot_id: int
    start_date: date
    end_date: date
    available: bool
    conflicting_booking_ids: List[int] = Field(default_factory=list)


class ReviewCreate(ApiModel):
    review: str = Field(..., min_length=1, max_length=800)
    stars: int = Field(..., ge=1, le=5)


class ReviewUpdate(ApiModel):
    review: Optional[str] = Field(None, min_length=1, max_length=800)
    stars: Optional[int] = Field(None, ge=1, le=5)


class ReviewRead(ReadModel):
    id: int
    user_id: int
    spot_id: int
    review: str
    stars: int
    created_at: datetime
    updated_at: Optional[datetime] = None


class ReviewImageCreate(ApiModel):
    url: str = Field(..., min_length=1, max_length=500)


class ReviewImageRead(ReadModel):
    id: int
    url: str


class ReviewWithDetails(ReviewRead):
    user: UserSummary = Field(..., alias="User")
    images: List[ReviewImageRead] = Field(default_factory=list, alias="ReviewImages")


class ReviewWithSpot(ReviewWithDetails):
    spot: SpotSummary = Field(..., alias="Spot")


class ReviewList(ApiModel):
    reviews: List[ReviewWithDetails] = Field(default_factory=list, alias="Reviews")


class UserReviewList(ApiModel):
    reviews: List[ReviewWithSpot] = Field(default_factory=list, alias="Reviews")
