# app/services/conversation_service.py
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from app.exceptions import ConstraintViolation, NotFound, QueryFailed, ValidationFailure
from app.models.conversation import Conversation
from app.models.message import Message
from app.models.user import User
from app.services.conversation_state import recompute_unread_counts

logger = logging.getLogger(__name__)


def normalize_participants(user_a: int, user_b: int) -> Tuple[int, int]:
    """Canonical (smaller, larger) ordering of a participant pair"""
    if user_a == user_b:
        raise ValidationFailure("A conversation needs two different participants")
    return min(user_a, user_b), max(user_a, user_b)


class ConversationService:
    """Service for handling conversation operations"""

    def __init__(self, db: Session):
        self.db = db

    def find_conversation(self, user_a: int, user_b: int) -> Optional[Conversation]:
        """Get the conversation between two users in either order"""
        participant_1, participant_2 = normalize_participants(user_a, user_b)
        return self.db.query(Conversation).filter(
            Conversation.participant_1_id == participant_1,
            Conversation.participant_2_id == participant_2,
        ).first()

    def create_conversation(self, user_a: int, user_b: int, commit: bool = True) -> Conversation:
        """
        Create a conversation between two users.

        The pair is stored in canonical order, so a second conversation for the
        same two users raises ConstraintViolation whichever order they are given in.
        """
        participant_1, participant_2 = normalize_participants(user_a, user_b)
        conversation = Conversation(participant_1_id=participant_1, participant_2_id=participant_2)
        try:
            self.db.add(conversation)
            self.db.flush()
            if commit:
                self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConstraintViolation(
                f"Conversation between {participant_1} and {participant_2} already exists"
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create conversation: {str(e)}")
            raise QueryFailed("Failed to create conversation") from e

        logger.info(f"Created conversation {conversation.id} for users {participant_1} and {participant_2}")
        return conversation

    def get_or_create_conversation(self, user_a: int, user_b: int, commit: bool = True) -> Conversation:
        """Get the conversation for a pair, creating it on first contact"""
        conversation = self.find_conversation(user_a, user_b)
        if conversation:
            return conversation
        return self.create_conversation(user_a, user_b, commit=commit)

    def get_conversation(self, conversation_id: int) -> Optional[Conversation]:
        """Get a conversation by ID"""
        return self.db.query(Conversation).filter(Conversation.id == conversation_id).first()

    def get_user_conversation(self, conversation_id: int, user_id: int) -> Conversation:
        """Get a conversation the user takes part in, or raise NotFound"""
        conversation = self.db.query(Conversation).filter(
            Conversation.id == conversation_id,
            or_(
                Conversation.participant_1_id == user_id,
                Conversation.participant_2_id == user_id,
            ),
        ).first()
        if not conversation:
            raise NotFound("Conversation not found or access denied")
        return conversation

    def list_user_conversations(
        self,
        user_id: int,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Dict[str, Any]], int, int]:
        """
        Get the user's active conversations, most recent activity first.

        Returns:
            Tuple of (conversations, total_count, total_pages)
        """
        user_1 = aliased(User)
        user_2 = aliased(User)
        last_message = aliased(Message)

        query = self.db.query(Conversation, user_1, user_2, last_message).join(
            user_1, Conversation.participant_1_id == user_1.id
        ).join(
            user_2, Conversation.participant_2_id == user_2.id
        ).outerjoin(
            last_message, Conversation.last_message_id == last_message.id
        ).filter(
            or_(
                Conversation.participant_1_id == user_id,
                Conversation.participant_2_id == user_id,
            ),
            Conversation.is_active.is_(True),
            user_1.is_active.is_(True),
            user_2.is_active.is_(True),
        )

        total_count = query.count()
        total_pages = math.ceil(total_count / page_size) if total_count > 0 else 1

        offset = (page - 1) * page_size if page > 0 else 0
        rows = query.order_by(
            Conversation.last_message_at.desc(),
            Conversation.id.desc(),
        ).offset(offset).limit(page_size).all()

        result = []
        for conversation, participant_1, participant_2, message in rows:
            other = participant_2 if conversation.participant_1_id == user_id else participant_1
            result.append({
                "id": conversation.id,
                "last_message_at": conversation.last_message_at,
                "unread_count": conversation.unread_count_for(user_id),
                "other_user": {
                    "id": other.id,
                    "first_name": other.first_name,
                    "last_name": other.last_name,
                    "profile_image_url": other.profile_image_url,
                },
                "last_message": {
                    "content": message.content,
                    "sender_id": message.sender_id,
                    "message_type": message.message_type,
                    "created_at": message.created_at,
                } if message else None,
            })
        return result, total_count, total_pages

    def get_total_unread(self, user_id: int) -> int:
        """Sum of the user's unread counters across active conversations"""
        total = self.db.query(
            func.sum(
                case(
                    (Conversation.participant_1_id == user_id, Conversation.participant_1_unread_count),
                    else_=Conversation.participant_2_unread_count,
                )
            )
        ).filter(
            or_(
                Conversation.participant_1_id == user_id,
                Conversation.participant_2_id == user_id,
            ),
            Conversation.is_active.is_(True),
        ).scalar()
        return int(total or 0)

    def deactivate_conversation(self, conversation_id: int, user_id: int) -> Conversation:
        """Hide a conversation; rows are kept"""
        conversation = self.get_user_conversation(conversation_id, user_id)
        conversation.is_active = False
        self.db.commit()
        self.db.refresh(conversation)
        return conversation

    def reconcile_unread_counts(self, conversation_id: Optional[int] = None) -> List[Dict[str, int]]:
        """Recompute unread counters from messages; returns the repaired conversations"""
        try:
            repaired = recompute_unread_counts(self.db, conversation_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Unread count reconciliation failed: {str(e)}")
            raise QueryFailed("Unread count reconciliation failed") from e

        logger.info(f"Reconciled unread counters, {len(repaired)} conversation(s) repaired")
        return repaired
