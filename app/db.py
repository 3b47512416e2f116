import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from .config import settings

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables for every registered model."""
    # Registers the models on Base.metadata
    from app.models import user  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


def dispose_db() -> None:
    engine.dispose()
    logger.info("Database connections closed")
