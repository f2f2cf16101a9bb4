# app/schemas/messages.py
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from app.models.enums import MessageType
from app.schemas.base import PaginatedResponse


class MessageBase(BaseModel):
    """Base message properties."""
    content: str = Field(..., min_length=1, max_length=1000)


class MessageCreate(MessageBase):
    """Properties required to send a message."""
    message_type: MessageType = MessageType.TEXT
    images: List[str] = Field(default_factory=list)


class MessageUpdate(MessageBase):
    """New content for an edited message."""
    pass


class MessageResponse(MessageBase):
    """Response model with basic message properties."""
    id: int
    conversation_id: int
    sender_id: int
    recipient_id: int
    message_type: str
    images: List[str] = Field(default_factory=list)
    is_read: bool
    read_at: Optional[datetime] = None
    is_edited: bool
    edited_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MessageSender(BaseModel):
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class MessageDetailResponse(MessageResponse):
    """Detailed message response including sender information."""
    sender: MessageSender


class MessageList(PaginatedResponse):
    """Paginated list of messages."""
    items: List[MessageDetailResponse]


class MessageReadResponse(BaseModel):
    message_id: int
    read_at: datetime
