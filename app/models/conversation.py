# app/models/conversation.py
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.mixins import TimestampMixin, utcnow


class Conversation(Base, TimestampMixin):
    """
    Direct conversation between two users.

    Participants are stored in canonical order (participant_1_id < participant_2_id)
    so each unordered pair maps to exactly one row. The unread counters are
    maintained by app.services.conversation_state, never recomputed on read.
    """
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    participant_1_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    participant_2_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    last_message_id = Column(
        Integer,
        ForeignKey("messages.id", use_alter=True, name="fk_conversations_last_message", ondelete="SET NULL"),
        nullable=True,
    )
    last_message_at = Column(DateTime, default=utcnow, nullable=False)

    participant_1_unread_count = Column(Integer, default=0, nullable=False)
    participant_2_unread_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    participant_1 = relationship("User", foreign_keys=[participant_1_id])
    participant_2 = relationship("User", foreign_keys=[participant_2_id])
    last_message = relationship("Message", foreign_keys=[last_message_id], viewonly=True)
    messages = relationship(
        "Message",
        back_populates="conversation",
        foreign_keys="Message.conversation_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("participant_1_id", "participant_2_id", name="uq_conversations_participants"),
        CheckConstraint("participant_1_id < participant_2_id", name="ck_conversations_participant_order"),
        CheckConstraint("participant_1_unread_count >= 0", name="ck_conversations_p1_unread"),
        CheckConstraint("participant_2_unread_count >= 0", name="ck_conversations_p2_unread"),
    )

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.participant_1_id, self.participant_2_id)

    def other_participant_id(self, user_id: int) -> int:
        return self.participant_2_id if user_id == self.participant_1_id else self.participant_1_id

    def unread_count_for(self, user_id: int) -> int:
        if user_id == self.participant_1_id:
            return self.participant_1_unread_count
        if user_id == self.participant_2_id:
            return self.participant_2_unread_count
        return 0

    def __repr__(self):
        return f"<Conversation {self.id} - {self.participant_1_id}/{self.participant_2_id}>"
