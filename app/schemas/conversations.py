# app/schemas/conversations.py
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from app.schemas.base import PaginatedResponse
from app.schemas.messages import MessageResponse


class UserSummary(BaseModel):
    """Minimal public profile of a user."""
    id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None


class LastMessageSummary(BaseModel):
    content: str
    sender_id: int
    message_type: str
    created_at: datetime


class ConversationSummary(BaseModel):
    """Conversation as listed for one of its participants."""
    id: int
    last_message_at: datetime
    unread_count: int
    other_user: UserSummary
    last_message: Optional[LastMessageSummary] = None


class ConversationList(PaginatedResponse):
    """Paginated list of conversations."""
    items: List[ConversationSummary]


class ConversationCreate(BaseModel):
    """Start a conversation with a first message."""
    recipient_id: int = Field(..., ge=1)
    initial_message: str = Field(..., min_length=1, max_length=1000)


class ConversationCreated(BaseModel):
    conversation_id: int
    message: MessageResponse
    other_user: UserSummary


class UnreadCountResponse(BaseModel):
    total_unread: int
    user_id: int


class ReconcileEntry(BaseModel):
    conversation_id: int
    old_participant_1_unread_count: int
    old_participant_2_unread_count: int
    participant_1_unread_count: int
    participant_2_unread_count: int


class ReconcileResponse(BaseModel):
    repaired: List[ReconcileEntry]
