"""Database configuration and connection setup"""
import logging
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from easyagenda.config.settings import get_settings
from easyagenda.core.errors import PersistenceError

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create an engine; pooled for server databases, thread-shared for SQLite"""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )

    settings = get_settings()
    return create_engine(
        database_url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=False,
    )


@lru_cache()
def get_engine() -> Engine:
    """Application engine, created on first use"""
    return build_engine(get_settings().DATABASE_URL)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def get_session_factory() -> sessionmaker:
    """Session factory bound to the application engine"""
    if SessionLocal.kw.get("bind") is None:
        SessionLocal.configure(bind=get_engine())
    return SessionLocal


def get_db():
    """Database dependency for FastAPI"""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, what: str) -> None:
    """Commit the session; on failure roll back and raise PersistenceError"""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to persist {what}: {e}", exc_info=True)
        raise PersistenceError(f"could not persist {what}") from e


def create_tables(engine: Engine = None):
    """Create all tables (local runs and tests; production uses alembic)"""
    from easyagenda.models import Base

    Base.metadata.create_all(bind=engine or get_engine())


if __name__ == "__main__":
    create_tables()
    print("Database tables created successfully!")
