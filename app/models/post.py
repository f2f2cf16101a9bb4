# app/models/post.py
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.enums import PostPriority
from app.models.mixins import TimestampMixin


class Post(Base, TimestampMixin):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False)
    post_type = Column(String(50), nullable=False)
    priority = Column(String(20), default=PostPriority.NORMAL.value, nullable=False)

    # Geographic point; treated as missing unless both coordinates are set
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location_city = Column(String(100), nullable=True)
    location_state = Column(String(50), nullable=True)

    images = Column(JSON, default=list)
    tags = Column(JSON, default=list)
    is_emergency = Column(Boolean, default=False, nullable=False)
    is_resolved = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    author = relationship("User", back_populates="posts")

    __table_args__ = (
        Index("ix_posts_location_city_state", "location_city", "location_state"),
        Index("ix_posts_created_at", "created_at"),
    )

    @property
    def has_location(self):
        return self.latitude is not None and self.longitude is not None

    def __repr__(self):
        return f"<Post {self.id} - {self.post_type}/{self.priority}>"
