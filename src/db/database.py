from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from src.db.models.base import Base

_engine: Engine | None = None
_SessionLocal: sessionmaker | None = None


def create_db_engine(database_url: str | None = None) -> Engine:
    """Create an engine for the given URL (defaults to settings.database_url)."""
    settings = get_settings()
    url = database_url or settings.database_url
    return create_engine(url, echo=settings.log_level == "DEBUG", pool_pre_ping=True)


def get_engine() -> Engine:
    """Get the default database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def _default_session_factory() -> sessionmaker:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = make_session_factory(get_engine())
    return _SessionLocal


def init_db(engine: Engine | None = None) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("Database tables initialized")


@contextmanager
def session_scope(session_factory: sessionmaker | None = None) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = (session_factory or _default_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
