# app/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import get_settings

settings = get_settings()

# Create SQLAlchemy engine and session factory
engine = create_engine(settings.DATABASE_URL, **settings.engine_options())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# SQLAlchemy Base
Base = declarative_base()


# Dependency to get DB session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_models():
    """Import every model module so Base.metadata knows all tables."""
    from app.models import user, post, conversation, message, weather_alert  # noqa: F401
