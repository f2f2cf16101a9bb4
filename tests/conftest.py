import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET"] = "test-secret"

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db, init_models
from app.models.mixins import utcnow
from app.models.post import Post
from app.models.user import User
from app.services.auth_service import AuthService

init_models()


def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", _enable_foreign_keys)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(**kwargs):
        counter["n"] += 1
        data = {
            "email": f"user{counter['n']}@example.com",
            "first_name": f"First{counter['n']}",
            "last_name": f"Last{counter['n']}",
        }
        data.update(kwargs)
        user = User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_post(db):
    base_time = utcnow() - timedelta(hours=1)
    counter = {"n": 0}

    def _make_post(user, **kwargs):
        counter["n"] += 1
        data = {
            "user_id": user.id,
            "content": f"post {counter['n']}",
            "post_type": "general",
            "priority": "normal",
            "created_at": base_time + timedelta(seconds=counter["n"]),
        }
        data.update(kwargs)
        post = Post(**data)
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    return _make_post


@pytest.fixture
def client(db):
    from app.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(db):
    def _auth_headers(user):
        token = AuthService(db).create_access_token(user.id)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
