# app/api/dependencies.py
from typing import Callable, Type
from fastapi import Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.conversation import Conversation
from app.models.user import User
from app.api.auth import get_current_user
from app.services.conversation_service import ConversationService


def get_service(service_class: Type) -> Callable:
    """Factory function to create service dependencies with DB injection"""
    def _get_service(db: Session = Depends(get_db)):
        return service_class(db)
    return _get_service


def get_conversation_access(
    conversation_id: int,
    current_user: User = Depends(get_current_user),
    conversation_service: ConversationService = Depends(get_service(ConversationService))
) -> Conversation:
    """
    Verify that the current user is a participant of the conversation.
    Raises NotFound, mapped to 404, for missing and foreign conversations alike.
    """
    return conversation_service.get_user_conversation(conversation_id, current_user.id)
