# app/services/conversation_state.py
"""
Bookkeeping that keeps conversations in step with their messages.

Both hooks run inside the caller's transaction and never commit. Counter
changes are relative expressions evaluated by the database, so concurrent
senders and readers on the same conversation do not lose updates.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.orm import Session

from app.models.conversation import Conversation
from app.models.message import Message
from app.models.mixins import utcnow

logger = logging.getLogger(__name__)


def apply_message_inserted(db: Session, message: Message) -> None:
    """
    Point the conversation at a freshly flushed message and bump the
    recipient's unread counter by one.
    """
    recipient_id = message.recipient_id
    stmt = (
        update(Conversation)
        .where(Conversation.id == message.conversation_id)
        .values(
            last_message_id=message.id,
            last_message_at=message.created_at,
            participant_1_unread_count=case(
                (Conversation.participant_1_id == recipient_id, Conversation.participant_1_unread_count + 1),
                else_=Conversation.participant_1_unread_count,
            ),
            participant_2_unread_count=case(
                (Conversation.participant_2_id == recipient_id, Conversation.participant_2_unread_count + 1),
                else_=Conversation.participant_2_unread_count,
            ),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    db.execute(stmt)


def apply_messages_read(db: Session, conversation_id: int, recipient_id: int, count: int = 1) -> None:
    """
    Take `count` messages off the recipient's unread counter, never below zero.

    Call only with the number of rows that actually went from unread to read.
    """
    if count <= 0:
        return

    stmt = (
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(
            participant_1_unread_count=case(
                (
                    and_(
                        Conversation.participant_1_id == recipient_id,
                        Conversation.participant_1_unread_count > count,
                    ),
                    Conversation.participant_1_unread_count - count,
                ),
                (Conversation.participant_1_id == recipient_id, 0),
                else_=Conversation.participant_1_unread_count,
            ),
            participant_2_unread_count=case(
                (
                    and_(
                        Conversation.participant_2_id == recipient_id,
                        Conversation.participant_2_unread_count > count,
                    ),
                    Conversation.participant_2_unread_count - count,
                ),
                (Conversation.participant_2_id == recipient_id, 0),
                else_=Conversation.participant_2_unread_count,
            ),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    db.execute(stmt)


def _unread_subquery(participant_column):
    return (
        select(func.count(Message.id))
        .where(
            Message.conversation_id == Conversation.id,
            Message.recipient_id == participant_column,
            Message.is_read.is_(False),
        )
        .scalar_subquery()
    )


def recompute_unread_counts(db: Session, conversation_id: Optional[int] = None) -> List[Dict[str, int]]:
    """
    Recompute unread counters from the messages table and fix any drift.

    Safe to run repeatedly; a second run reports nothing. Commits when it
    repaired at least one conversation.

    Returns:
        One dict per repaired conversation with the old and new counters.
    """
    unread = (
        db.query(
            Message.conversation_id,
            Message.recipient_id,
            func.count(Message.id).label("unread"),
        )
        .filter(Message.is_read.is_(False))
        .group_by(Message.conversation_id, Message.recipient_id)
    )
    conversations = db.query(Conversation)
    if conversation_id is not None:
        unread = unread.filter(Message.conversation_id == conversation_id)
        conversations = conversations.filter(Conversation.id == conversation_id)

    actual = {(row.conversation_id, row.recipient_id): row.unread for row in unread.all()}

    repaired = []
    for conversation in conversations.order_by(Conversation.id).all():
        expected_1 = actual.get((conversation.id, conversation.participant_1_id), 0)
        expected_2 = actual.get((conversation.id, conversation.participant_2_id), 0)
        if (
            conversation.participant_1_unread_count == expected_1
            and conversation.participant_2_unread_count == expected_2
        ):
            continue

        logger.warning(
            f"Unread counters drifted on conversation {conversation.id}: "
            f"({conversation.participant_1_unread_count}, {conversation.participant_2_unread_count}) "
            f"-> ({expected_1}, {expected_2})"
        )
        repaired.append({
            "conversation_id": conversation.id,
            "old_participant_1_unread_count": conversation.participant_1_unread_count,
            "old_participant_2_unread_count": conversation.participant_2_unread_count,
        })

    if not repaired:
        return repaired

    # New values come from the messages table at write time, not from the scan above
    repaired_ids = [entry["conversation_id"] for entry in repaired]
    db.execute(
        update(Conversation)
        .where(Conversation.id.in_(repaired_ids))
        .values(
            participant_1_unread_count=_unread_subquery(Conversation.participant_1_id),
            participant_2_unread_count=_unread_subquery(Conversation.participant_2_id),
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    counts = {
        row.id: row
        for row in db.execute(
            select(
                Conversation.id,
                Conversation.participant_1_unread_count,
                Conversation.participant_2_unread_count,
            ).where(Conversation.id.in_(repaired_ids))
        )
    }
    db.commit()

    for entry in repaired:
        row = counts[entry["conversation_id"]]
        entry["participant_1_unread_count"] = row.participant_1_unread_count
        entry["participant_2_unread_count"] = row.participant_2_unread_count
    return repaired
