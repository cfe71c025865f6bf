import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from umamii.schemas.user import ProfileResponse


class RestaurantCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    address: str = Field(min_length=1, max_length=500)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    cuisine: list[str] = Field(default_factory=list, max_length=10)
    rating: float | None = Field(default=None, ge=0, le=5)
    price_level: int | None = Field(default=None, ge=1, le=4)
    google_place_id: str | None = Field(default=None, max_length=255)


class RestaurantResponse(BaseModel):
    id: uuid.UUID
    name: str
    address: str
    latitude: float
    longitude: float
    cuisine: list[str]
    rating: float | None
    price_level: int | None
    google_place_id: str | None

    model_config = {"from_attributes": True}


class RecommendationCreate(BaseModel):
    restaurant_id: uuid.UUID
    personal_note: str = Field(min_length=1, max_length=2000)
    type: list[str] = Field(default_factory=list, max_length=10)
    cuisine: list[str] = Field(default_factory=list, max_length=10)
    photos: list[str] = Field(default_factory=list, max_length=10)


class RecommendationResponse(BaseModel):
    id: uuid.UUID
    restaurant: RestaurantResponse
    user: ProfileResponse
    type: list[str]
    cuisine: list[str]
    personal_note: str
    photos: list[str]
    upvotes: int
    has_user_upvoted: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}


class UpvoteResponse(BaseModel):
    recommendation_id: uuid.UUID
    upvoted: bool
    upvotes: int
