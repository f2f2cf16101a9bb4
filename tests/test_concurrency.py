from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.database import Base
from app.models.conversation import Conversation
from app.models.user import User
from app.services.conversation_service import ConversationService
from app.services.message_service import MessageService


def _file_engine(path):
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False, "timeout": 30})

    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        # let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# BEGIN IMMEDIATE serializes whole transactions, so this checks the end-to-end
# count only; test_counter_changes_are_relative_expressions checks the UPDATE form.
def test_simultaneous_sends_do_not_lose_increments(tmp_path):
    engine = _file_engine(tmp_path / "concurrency.db")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as db:
        db.add_all([User(email="a@example.com"), User(email="b@example.com")])
        db.commit()
        conversation_id = ConversationService(db).create_conversation(1, 2).id

    def send(i):
        with Session() as db:
            MessageService(db).send_message(conversation_id, sender_id=1, content=f"message {i}")

    total = 20
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(send, range(total)))

    with Session() as db:
        conversation = db.get(Conversation, conversation_id)
        assert conversation.participant_2_unread_count == total
        assert conversation.participant_1_unread_count == 0

    engine.dispose()


def test_counter_changes_are_relative_expressions(db, make_user):
    make_user()
    make_user()
    conversation = ConversationService(db).create_conversation(1, 2)
    captured = []

    def capture(conn, clauseelement, multiparams, params, execution_options):
        captured.append(str(clauseelement))

    event.listen(db.get_bind(), "before_execute", capture)
    try:
        MessageService(db).send_message(conversation.id, sender_id=1, content="hi")
    finally:
        event.remove(db.get_bind(), "before_execute", capture)

    statements = [s for s in captured if s.startswith("UPDATE conversations")]
    assert len(statements) == 1
    assert "participant_2_unread_count + " in statements[0]
