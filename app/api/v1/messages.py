# app/api/v1/messages.py
import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query

from app.api.auth import get_current_admin, get_current_user
from app.api.dependencies import get_service, get_conversation_access
from app.models.conversation import Conversation
from app.models.user import User
from app.schemas import (
    ConversationCreate,
    ConversationCreated,
    ConversationList,
    MessageCreate,
    MessageList,
    MessageReadResponse,
    MessageResponse,
    MessageUpdate,
    ReconcileResponse,
    UnreadCountResponse,
)
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/conversations", response_model=ConversationList)
async def list_conversations(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    conversation_service: ConversationService = Depends(get_service(ConversationService))
):
    """
    Get the current user's conversations, most recent activity first,
    with the other participant and the user's unread count.
    """
    conversations, total_count, total_pages = conversation_service.list_user_conversations(
        user_id=current_user.id,
        page=page,
        page_size=page_size
    )
    return {
        "items": conversations,
        "total": total_count,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages
    }


@router.post(
    "/conversations",
    response_model=ConversationCreated,
    status_code=status.HTTP_201_CREATED
)
async def create_conversation(
    conversation_data: ConversationCreate,
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_service(MessageService))
):
    """
    Start a conversation with another user, or reuse the existing one,
    and send the first message.
    """
    conversation, message = message_service.start_conversation(
        sender_id=current_user.id,
        recipient_id=conversation_data.recipient_id,
        initial_message=conversation_data.initial_message
    )
    other = message.recipient
    return {
        "conversation_id": conversation.id,
        "message": message,
        "other_user": {
            "id": other.id,
            "first_name": other.first_name,
            "last_name": other.last_name,
            "profile_image_url": other.profile_image_url
        }
    }


@router.post(
    "/conversations/reconcile",
    response_model=ReconcileResponse
)
async def reconcile_unread_counts(
    current_user: User = Depends(get_current_admin),
    conversation_service: ConversationService = Depends(get_service(ConversationService))
):
    """
    Recompute unread counters from the stored messages and repair any drift.
    """
    repaired = conversation_service.reconcile_unread_counts()
    logger.info(f"Admin {current_user.id} ran unread count reconciliation")
    return {"repaired": repaired}


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=MessageList
)
async def list_conversation_messages(
    conversation_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    conversation: Conversation = Depends(get_conversation_access),
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_service(MessageService))
):
    """
    Get messages from a conversation and mark the ones addressed to the
    current user as read.
    """
    messages, total_count, total_pages = message_service.get_conversation_messages(
        conversation_id=conversation.id,
        user_id=current_user.id,
        page=page,
        page_size=page_size
    )
    message_service.mark_conversation_read(conversation.id, current_user.id)
    return {
        "items": messages,
        "total": total_count,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages
    }


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    conversation_id: int,
    message_data: MessageCreate,
    conversation: Conversation = Depends(get_conversation_access),
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_service(MessageService))
):
    """Send a message to the other participant of a conversation."""
    return message_service.send_message(
        conversation_id=conversation.id,
        sender_id=current_user.id,
        content=message_data.content,
        message_type=message_data.message_type.value,
        images=message_data.images
    )


@router.put("/{message_id}/read", response_model=MessageReadResponse)
async def mark_message_read(
    message_id: int,
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_service(MessageService))
):
    """Mark a message addressed to the current user as read."""
    message = message_service.mark_message_read(message_id, current_user.id)
    if not message:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found or already read"
        )
    return {"message_id": message.id, "read_at": message.read_at}


@router.put("/{message_id}", response_model=MessageResponse)
async def edit_message(
    message_id: int,
    message_data: MessageUpdate,
    current_user: User = Depends(get_current_user),
    message_service: MessageService = Depends(get_service(MessageService))
):
    """Edit a message the current user sent."""
    return message_service.edit_message(message_id, current_user.id, message_data.content)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    conversation_service: ConversationService = Depends(get_service(ConversationService))
):
    """Total unread messages for the current user across active conversations."""
    return {
        "total_unread": conversation_service.get_total_unread(current_user.id),
        "user_id": current_user.id
    }
