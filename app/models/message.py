# app/models/message.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text, inspect
from sqlalchemy.orm import relationship, validates

from app.database import Base
from app.exceptions import ConstraintViolation
from app.models.enums import MessageType
from app.models.mixins import TimestampMixin


class Message(Base, TimestampMixin):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    message_type = Column(String(20), default=MessageType.TEXT.value, nullable=False)
    images = Column(JSON, default=list)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    is_edited = Column(Boolean, default=False, nullable=False)
    edited_at = Column(DateTime, nullable=True)

    conversation = relationship("Conversation", back_populates="messages", foreign_keys=[conversation_id])
    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    __table_args__ = (
        Index("ix_messages_conversation_created", "conversation_id", "created_at"),
        Index("ix_messages_recipient_unread", "recipient_id", "is_read"),
    )

    @validates("is_read")
    def _guard_read_state(self, key, value):
        # Read state of a stored message only changes through MessageService,
        # which keeps the conversation unread counters in step.
        if inspect(self).has_identity:
            raise ConstraintViolation("is_read can only change through MessageService.mark_message_read")
        return value

    def __repr__(self):
        return f"<Message {self.id} in Conversation {self.conversation_id}>"
