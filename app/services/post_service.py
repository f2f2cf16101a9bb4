# app/services/post_service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import NotFound, QueryFailed, ValidationFailure
from app.models.enums import PRIORITY_RANK, PostPriority
from app.models.mixins import to_naive_utc, utcnow
from app.models.post import Post
from app.models.user import User
from app.services.distance import DistanceFunction, distance_or_zero, get_distance_function

logger = logging.getLogger(__name__)


class PostService:
    """Service for community posts and the nearby-posts feed"""

    def __init__(self, db: Session, distance: Optional[DistanceFunction] = None):
        self.db = db
        self.distance = distance or get_distance_function()

    def find_nearby_posts(
        self,
        lat: float,
        lng: float,
        city: Optional[str] = None,
        state: Optional[str] = None,
        radius_miles: float = 10.0,
        city_only: bool = False,
        limit: int = 20,
        offset: int = 0,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get a page of non-expired posts around a point.

        With city_only and a city, only posts whose location_city and
        location_state equal the given values are candidates; otherwise every
        non-expired post is. A state of None matches only posts whose
        location_state IS NULL, where a plain SQL equality would match nothing.
        Rows are ordered emergency first, then by priority tier, then newest
        first, with the post id as the final tiebreak.

        radius_miles does not filter anything: distance_miles is informational.

        Returns:
            List of dicts with the post columns, distance_miles and the
            author's name and profile image.
        """
        if limit < 0 or offset < 0:
            raise ValidationFailure("limit and offset must be non-negative")

        now = now or utcnow()

        emergency_rank = case((Post.is_emergency.is_(True), 1), else_=2)
        priority_rank = case(PRIORITY_RANK, value=Post.priority, else_=len(PRIORITY_RANK) + 1)

        query = self.db.query(
            Post,
            User.first_name,
            User.last_name,
            User.profile_image_url,
        ).join(
            User, Post.user_id == User.id
        ).filter(
            or_(Post.expires_at.is_(None), Post.expires_at > now)
        )

        if city_only and city is not None:
            query = query.filter(
                Post.location_city == city,
                Post.location_state == state,
            )

        query = query.order_by(
            emergency_rank,
            priority_rank,
            Post.created_at.desc(),
            Post.id.desc(),
        ).limit(limit).offset(offset)

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Nearby posts query failed: {str(e)}")
            raise QueryFailed("Nearby posts query failed") from e

        result = []
        for post, first_name, last_name, profile_image_url in rows:
            result.append({
                "id": post.id,
                "user_id": post.user_id,
                "title": post.title,
                "content": post.content,
                "post_type": post.post_type,
                "priority": post.priority,
                "location_city": post.location_city,
                "location_state": post.location_state,
                "latitude": post.latitude,
                "longitude": post.longitude,
                "images": post.images or [],
                "tags": post.tags or [],
                "is_emergency": post.is_emergency,
                "is_resolved": post.is_resolved,
                "expires_at": post.expires_at,
                "created_at": post.created_at,
                "updated_at": post.updated_at,
                "distance_miles": distance_or_zero(self.distance, lat, lng, post.latitude, post.longitude),
                "author_first_name": first_name,
                "author_last_name": last_name,
                "author_profile_image": profile_image_url,
            })
        return result

    def create_post(self, user_id: int, post_data: Dict[str, Any]) -> Post:
        """Create a post for a user"""
        priority = post_data.get("priority") or PostPriority.NORMAL.value
        if priority not in PRIORITY_RANK:
            raise ValidationFailure(f"Unknown priority: {priority}")

        # expires_at is compared against naive UTC
        post_data = {**post_data, "priority": priority}
        if post_data.get("expires_at") is not None:
            post_data["expires_at"] = to_naive_utc(post_data["expires_at"])

        post = Post(user_id=user_id, **post_data)
        try:
            self.db.add(post)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create post: {str(e)}")
            raise QueryFailed("Failed to create post") from e
        self.db.refresh(post)
        return post

    def get_post(self, post_id: int) -> Optional[Post]:
        """Get a post by ID"""
        return self.db.query(Post).filter(Post.id == post_id).first()

    def resolve_post(self, post_id: int, user_id: int) -> Post:
        """Mark one of the user's posts as resolved"""
        post = self.get_post(post_id)
        if not post or post.user_id != user_id:
            raise NotFound("Post not found")

        post.is_resolved = True
        self.db.commit()
        self.db.refresh(post)
        return post
