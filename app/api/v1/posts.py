# app/api/v1/posts.py
from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import Optional

from app.api.auth import get_current_user
from app.api.dependencies import get_service
from app.config import get_settings
from app.models.user import User
from app.schemas import PostCreate, PostResponse, NearbyPostList
from app.services.post_service import PostService

router = APIRouter()
settings = get_settings()


@router.get("/nearby", response_model=NearbyPostList)
async def list_nearby_posts(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    city: Optional[str] = Query(None, max_length=100),
    state: Optional[str] = Query(None, max_length=50),
    radius: float = Query(10.0, ge=0, description="Informational only; results are not bounded by distance"),
    city_only: bool = Query(False),
    limit: int = Query(settings.NEARBY_POSTS_DEFAULT_LIMIT, ge=1, le=settings.NEARBY_POSTS_MAX_LIMIT),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_service(PostService))
):
    """
    Get community posts around a point.

    Emergency posts come first, then posts by priority tier, newest first.
    With city_only, only posts from the given city and state are returned.
    """
    posts = post_service.find_nearby_posts(
        lat=latitude,
        lng=longitude,
        city=city,
        state=state,
        radius_miles=radius,
        city_only=city_only,
        limit=limit,
        offset=offset,
    )
    return {
        "items": posts,
        "limit": limit,
        "offset": offset,
        "city_only": city_only,
        "radius_miles": radius,
    }


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_service(PostService))
):
    """Create a post for the current user."""
    data = post_data.model_dump()
    data["priority"] = post_data.priority.value
    return post_service.create_post(current_user.id, data)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_service(PostService))
):
    """Get a post by ID."""
    post = post_service.get_post(post_id)
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )
    return post


@router.put("/{post_id}/resolve", response_model=PostResponse)
async def resolve_post(
    post_id: int,
    current_user: User = Depends(get_current_user),
    post_service: PostService = Depends(get_service(PostService))
):
    """Mark one of your posts as resolved."""
    return post_service.resolve_post(post_id, current_user.id)
