import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.exceptions import ConstraintViolation, QueryFailed, ValidationFailure
from app.models.conversation import Conversation
from app.models.message import Message
from app.services import conversation_state
from app.services.conversation_service import ConversationService, normalize_participants
from app.services.conversation_state import apply_messages_read, recompute_unread_counts
from app.services.message_service import MessageService


@pytest.fixture
def users(make_user):
    return [make_user() for _ in range(5)]


def _reload(db, conversation_id):
    db.expire_all()
    return db.get(Conversation, conversation_id)


def _unread_in_db(db, conversation_id, recipient_id):
    return db.query(Message).filter(
        Message.conversation_id == conversation_id,
        Message.recipient_id == recipient_id,
        Message.is_read.is_(False),
    ).count()


def test_normalize_participants():
    assert normalize_participants(5, 3) == (3, 5)
    assert normalize_participants(3, 5) == (3, 5)
    with pytest.raises(ValidationFailure):
        normalize_participants(4, 4)


def test_conversation_stored_in_canonical_order(db, users):
    conversation = ConversationService(db).create_conversation(5, 3)
    assert (conversation.participant_1_id, conversation.participant_2_id) == (3, 5)


@pytest.mark.parametrize("first, second", [((5, 3), (3, 5)), ((5, 3), (5, 3)), ((3, 5), (5, 3))])
def test_duplicate_pair_violates_uniqueness(db, users, first, second):
    service = ConversationService(db)
    service.create_conversation(*first)
    with pytest.raises(ConstraintViolation):
        service.create_conversation(*second)


def test_get_or_create_reuses_existing(db, users):
    service = ConversationService(db)
    created = service.get_or_create_conversation(5, 3)
    assert service.get_or_create_conversation(3, 5).id == created.id


def test_reversed_raw_insert_is_rejected_by_store(db, users):
    db.add(Conversation(participant_1_id=5, participant_2_id=3))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_insert_updates_last_message_and_recipient_counter(db, users):
    conversation = ConversationService(db).create_conversation(5, 3)
    message = MessageService(db).send_message(conversation.id, sender_id=3, content="hello")

    conversation = _reload(db, conversation.id)
    assert conversation.last_message_id == message.id
    assert conversation.last_message_at == message.created_at
    assert conversation.unread_count_for(5) == 1
    assert conversation.unread_count_for(3) == 0
    assert message.recipient_id == 5


def test_read_transition_decrements_once(db, users):
    conversation = ConversationService(db).create_conversation(3, 5)
    messages = MessageService(db)
    first = messages.send_message(conversation.id, sender_id=3, content="one")
    messages.send_message(conversation.id, sender_id=3, content="two")
    assert _reload(db, conversation.id).participant_2_unread_count == 2

    read = messages.mark_message_read(first.id, user_id=5)
    assert read is not None
    assert read.is_read is True
    assert read.read_at is not None
    assert _reload(db, conversation.id).participant_2_unread_count == 1

    # already read: no second decrement
    assert messages.mark_message_read(first.id, user_id=5) is None
    assert _reload(db, conversation.id).participant_2_unread_count == 1


def test_only_recipient_can_mark_read(db, users):
    conversation = ConversationService(db).create_conversation(3, 5)
    messages = MessageService(db)
    message = messages.send_message(conversation.id, sender_id=3, content="one")

    assert messages.mark_message_read(message.id, user_id=3) is None
    assert _reload(db, conversation.id).participant_2_unread_count == 1


def test_decrement_is_clamped_at_zero(db, users):
    conversation = ConversationService(db).create_conversation(3, 5)
    messages = MessageService(db)
    message = messages.send_message(conversation.id, sender_id=3, content="one")

    db.execute(update(Conversation).where(Conversation.id == conversation.id).values(participant_2_unread_count=0))
    db.commit()

    assert messages.mark_message_read(message.id, user_id=5) is not None
    assert _reload(db, conversation.id).participant_2_unread_count == 0


def test_bulk_decrement_is_clamped_at_zero(db, users):
    conversation = ConversationService(db).create_conversation(3, 5)
    db.execute(update(Conversation).where(Conversation.id == conversation.id).values(participant_1_unread_count=2))
    db.commit()

    apply_messages_read(db, conversation.id, 3, count=5)
    db.commit()
    conversation = _reload(db, conversation.id)
    assert conversation.participant_1_unread_count == 0
    assert conversation.participant_2_unread_count == 0


def test_counters_match_unread_messages(db, users):
    conversation = ConversationService(db).create_conversation(1, 2)
    messages = MessageService(db)
    sent = []
    for i in range(4):
        sent.append(messages.send_message(conversation.id, sender_id=1, content=f"a{i}"))
    for i in range(3):
        sent.append(messages.send_message(conversation.id, sender_id=2, content=f"b{i}"))

    messages.mark_message_read(sent[0].id, user_id=2)
    messages.mark_message_read(sent[5].id, user_id=1)
    assert messages.mark_conversation_read(conversation.id, user_id=2) == 3

    conversation = _reload(db, conversation.id)
    assert conversation.participant_1_unread_count == _unread_in_db(db, conversation.id, 1) == 2
    assert conversation.participant_2_unread_count == _unread_in_db(db, conversation.id, 2) == 0


def test_direct_read_state_mutation_is_rejected(db, users):
    conversation = ConversationService(db).create_conversation(1, 2)
    message = MessageService(db).send_message(conversation.id, sender_id=1, content="hi")

    with pytest.raises(ConstraintViolation):
        message.is_read = True


def test_failed_counter_update_rolls_back_insert(db, users, monkeypatch):
    conversation = ConversationService(db).create_conversation(1, 2)

    def broken_hook(session, message):
        session.execute(update(Conversation).values(participant_1_unread_count=-1))

    monkeypatch.setattr("app.services.message_service.apply_message_inserted", broken_hook)

    with pytest.raises(QueryFailed):
        MessageService(db).send_message(conversation.id, sender_id=2, content="lost")

    assert db.query(Message).count() == 0
    assert _reload(db, conversation.id).participant_1_unread_count == 0


def test_recompute_repairs_drift_and_is_idempotent(db, users):
    conversation = ConversationService(db).create_conversation(1, 2)
    messages = MessageService(db)
    messages.send_message(conversation.id, sender_id=1, content="one")
    messages.send_message(conversation.id, sender_id=1, content="two")

    db.execute(update(Conversation).where(Conversation.id == conversation.id).values(
        participant_1_unread_count=4, participant_2_unread_count=0
    ))
    db.commit()

    repaired = recompute_unread_counts(db)
    assert repaired == [{
        "conversation_id": conversation.id,
        "old_participant_1_unread_count": 4,
        "old_participant_2_unread_count": 0,
        "participant_1_unread_count": 0,
        "participant_2_unread_count": 2,
    }]
    conversation = _reload(db, conversation.id)
    assert (conversation.participant_1_unread_count, conversation.participant_2_unread_count) == (0, 2)

    assert recompute_unread_counts(db) == []


def test_recompute_counts_messages_sent_during_repair(db, users, monkeypatch):
    conversation = ConversationService(db).create_conversation(1, 2)
    messages = MessageService(db)
    messages.send_message(conversation.id, sender_id=1, content="one")
    messages.send_message(conversation.id, sender_id=1, content="two")
    db.execute(update(Conversation).values(participant_2_unread_count=0))
    db.commit()

    def send_after_scan(*args, **kwargs):
        messages._insert_message(conversation, 1, "three", "text", None)

    monkeypatch.setattr(conversation_state.logger, "warning", send_after_scan)
    repaired = recompute_unread_counts(db)

    assert repaired[0]["participant_2_unread_count"] == 3
    assert _reload(db, conversation.id).participant_2_unread_count == 3
    assert _unread_in_db(db, conversation.id, 2) == 3


def test_recompute_single_conversation(db, users):
    service = ConversationService(db)
    first = service.create_conversation(1, 2)
    second = service.create_conversation(1, 3)
    db.execute(update(Conversation).values(participant_1_unread_count=7))
    db.commit()

    repaired = service.reconcile_unread_counts(first.id)
    assert [r["conversation_id"] for r in repaired] == [first.id]
    assert _reload(db, second.id).participant_1_unread_count == 7
