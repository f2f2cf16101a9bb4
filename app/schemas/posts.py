# app/schemas/posts.py
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from datetime import datetime

from app.models.enums import PostPriority
from app.models.mixins import to_naive_utc


class PostBase(BaseModel):
    """Base post properties."""
    title: Optional[str] = Field(None, max_length=255)
    content: str = Field(..., min_length=1, max_length=5000)
    post_type: str = Field(..., min_length=1, max_length=50)
    priority: PostPriority = PostPriority.NORMAL
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    location_city: Optional[str] = Field(None, max_length=100)
    location_state: Optional[str] = Field(None, max_length=50)
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    is_emergency: bool = False
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def expires_at_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(value)


class PostCreate(PostBase):
    """Properties required to create a post."""
    pass


class PostResponse(PostBase):
    """Response model for a stored post."""
    id: int
    user_id: int
    priority: str
    is_resolved: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class NearbyPostResponse(PostResponse):
    """Post row from the nearby feed, with distance and author fields."""
    distance_miles: float
    author_first_name: Optional[str] = None
    author_last_name: Optional[str] = None
    author_profile_image: Optional[str] = None


class NearbyPostList(BaseModel):
    """One page of the nearby feed."""
    items: List[NearbyPostResponse]
    limit: int
    offset: int
    city_only: bool
    radius_miles: float
