"""
Schema definitions for the application.
This module exports all schemas for easy importing throughout the app.
"""

# Import from base
from app.schemas.base import PaginatedResponse

# Import from posts
from app.schemas.posts import (
    PostBase, PostCreate, PostResponse, NearbyPostResponse, NearbyPostList
)

# Import from messages
from app.schemas.messages import (
    MessageBase, MessageCreate, MessageUpdate, MessageResponse, MessageSender,
    MessageDetailResponse, MessageList, MessageReadResponse
)

# Import from conversations
from app.schemas.conversations import (
    UserSummary, LastMessageSummary, ConversationSummary, ConversationList,
    ConversationCreate, ConversationCreated, UnreadCountResponse,
    ReconcileEntry, ReconcileResponse
)

# Import from weather
from app.schemas.weather import WeatherAlertResponse, WeatherAlertList
