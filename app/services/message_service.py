# app/services/message_service.py
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.exceptions import NotFound, QueryFailed, ValidationFailure
from app.models.conversation import Conversation
from app.models.enums import MessageType
from app.models.message import Message
from app.models.mixins import utcnow
from app.models.user import User
from app.services.conversation_service import ConversationService
from app.services.conversation_state import apply_message_inserted, apply_messages_read

logger = logging.getLogger(__name__)


class MessageService:
    """
    Service for handling direct messages.

    Every write that touches messages also updates the owning conversation in
    the same transaction, so a message and its counter change commit or roll
    back together.
    """

    def __init__(self, db: Session):
        self.db = db

    def _insert_message(
        self,
        conversation: Conversation,
        sender_id: int,
        content: str,
        message_type: str,
        images: Optional[List[str]],
    ) -> Message:
        if message_type not in {t.value for t in MessageType}:
            raise ValidationFailure(f"Invalid message type: {message_type}")

        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            recipient_id=conversation.other_participant_id(sender_id),
            content=content,
            message_type=message_type,
            images=images or [],
            created_at=utcnow(),
        )
        self.db.add(message)
        self.db.flush()
        apply_message_inserted(self.db, message)
        return message

    def send_message(
        self,
        conversation_id: int,
        sender_id: int,
        content: str,
        message_type: str = MessageType.TEXT.value,
        images: Optional[List[str]] = None,
    ) -> Message:
        """
        Send a message in an existing conversation.

        The recipient is the other participant; the conversation's last message
        and the recipient's unread counter are updated in the same transaction.
        """
        conversation = ConversationService(self.db).get_user_conversation(conversation_id, sender_id)

        try:
            message = self._insert_message(conversation, sender_id, content, message_type, images)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to send message in conversation {conversation_id}: {str(e)}")
            raise QueryFailed("Failed to send message") from e

        self.db.refresh(message)
        return message

    def start_conversation(self, sender_id: int, recipient_id: int, initial_message: str) -> Tuple[Conversation, Message]:
        """
        Open (or reuse) the conversation with a user and send the first message.
        """
        if sender_id == recipient_id:
            raise ValidationFailure("Cannot create conversation with yourself")

        recipient = self.db.query(User).filter(
            User.id == recipient_id,
            User.is_active.is_(True),
        ).first()
        if not recipient:
            raise NotFound("Recipient not found")

        conversation_service = ConversationService(self.db)
        conversation = conversation_service.get_or_create_conversation(sender_id, recipient_id, commit=False)
        conversation.is_active = True

        try:
            message = self._insert_message(conversation, sender_id, initial_message, MessageType.TEXT.value, None)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to start conversation between {sender_id} and {recipient_id}: {str(e)}")
            raise QueryFailed("Failed to create conversation") from e

        self.db.refresh(conversation)
        self.db.refresh(message)
        return conversation, message

    def get_message(self, message_id: int) -> Optional[Message]:
        """Retrieve a message by its ID."""
        return self.db.query(Message).filter(Message.id == message_id).first()

    def mark_message_read(self, message_id: int, user_id: int) -> Optional[Message]:
        """
        Mark a single message read by its recipient.

        Returns:
            The message if it went from unread to read, None if it does not
            exist, is not addressed to the user, or was already read.
        """
        read_at = utcnow()
        try:
            result = self.db.execute(
                update(Message)
                .where(
                    Message.id == message_id,
                    Message.recipient_id == user_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True, read_at=read_at)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                return None

            conversation_id = self.db.query(Message.conversation_id).filter(Message.id == message_id).scalar()
            apply_messages_read(self.db, conversation_id, user_id, 1)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark message {message_id} read: {str(e)}")
            raise QueryFailed("Failed to mark message as read") from e

        message = self.get_message(message_id)
        self.db.refresh(message)
        return message

    def mark_conversation_read(self, conversation_id: int, user_id: int) -> int:
        """
        Mark every unread message addressed to the user in a conversation read.

        Returns:
            Number of messages that went from unread to read.
        """
        conversation = ConversationService(self.db).get_user_conversation(conversation_id, user_id)

        try:
            result = self.db.execute(
                update(Message)
                .where(
                    Message.conversation_id == conversation.id,
                    Message.recipient_id == user_id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True, read_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            marked = result.rowcount
            apply_messages_read(self.db, conversation.id, user_id, marked)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark conversation {conversation_id} read: {str(e)}")
            raise QueryFailed("Failed to mark conversation as read") from e

        return marked

    def get_conversation_messages(
        self,
        conversation_id: int,
        user_id: int,
        page: int = 1,
        page_size: int = 50,
    ) -> Tuple[List[Dict[str, Any]], int, int]:
        """
        Get a page of messages, newest page first, each page in chronological order.

        Returns:
            Tuple of (messages, total_count, total_pages).
        """
        conversation = ConversationService(self.db).get_user_conversation(conversation_id, user_id)

        query = self.db.query(Message, User).join(
            User, Message.sender_id == User.id
        ).filter(
            Message.conversation_id == conversation.id
        )

        total_count = query.count()
        total_pages = math.ceil(total_count / page_size) if total_count > 0 else 1

        offset = (page - 1) * page_size if page > 0 else 0
        rows = query.order_by(
            Message.created_at.desc(),
            Message.id.desc(),
        ).offset(offset).limit(page_size).all()

        result = []
        for message, sender in reversed(rows):
            result.append({
                "id": message.id,
                "conversation_id": message.conversation_id,
                "content": message.content,
                "sender_id": message.sender_id,
                "recipient_id": message.recipient_id,
                "message_type": message.message_type,
                "images": message.images or [],
                "is_read": message.is_read,
                "read_at": message.read_at,
                "is_edited": message.is_edited,
                "edited_at": message.edited_at,
                "created_at": message.created_at,
                "sender": {
                    "id": sender.id,
                    "first_name": sender.first_name,
                    "last_name": sender.last_name,
                    "profile_image_url": sender.profile_image_url,
                },
            })
        return result, total_count, total_pages

    def edit_message(self, message_id: int, sender_id: int, content: str) -> Message:
        """Replace the content of a message the user sent"""
        message = self.get_message(message_id)
        if not message or message.sender_id != sender_id:
            raise NotFound("Message not found")

        message.content = content
        message.is_edited = True
        message.edited_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to edit message {message_id}: {str(e)}")
            raise QueryFailed("Failed to edit message") from e

        self.db.refresh(message)
        return message
