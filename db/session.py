from collections.abc import Generator
from contextlib import contextmanager

from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from core.dependencies import get_settings
from core.settings import Settings
from db.models import Base

# Global engine singleton
_engine = None


def reset_engines():
    """Reset global engine singleton. Used for testing."""
    global _engine
    if _engine:
        _engine.dispose()
        _engine = None


def get_engine(settings: Settings = Depends(get_settings)):
    """Get or create the SQLAlchemy engine."""
    global _engine
    if _engine is None:
        if settings.DATABASE_URL.startswith("postgresql"):
            _engine = create_engine(
                settings.DATABASE_URL,
                future=True,
                poolclass=QueuePool,
                pool_size=settings.DATABASE_POOL_SIZE,
                max_overflow=settings.DATABASE_MAX_OVERFLOW,
                pool_timeout=settings.DATABASE_POOL_TIMEOUT,
                pool_recycle=settings.DATABASE_POOL_RECYCLE,
                pool_pre_ping=True,  # Verify connections before use
            )
        else:
            # SQLite fallback for tests and local runs
            is_sqlite = settings.DATABASE_URL.startswith("sqlite")
            _engine = create_engine(
                settings.DATABASE_URL,
                future=True,
                connect_args={"check_same_thread": False} if is_sqlite else {},
                poolclass=StaticPool if is_sqlite else None,
            )
    return _engine


# Session factory, bound lazily to the engine
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def get_session_factory(settings: Settings) -> sessionmaker:
    SessionLocal.configure(bind=get_engine(settings))
    return SessionLocal


def get_db(settings: Settings = Depends(get_settings)) -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session."""
    db = get_session_factory(settings)()
    try:
        yield db
    finally:
        db.close()


def init_db(settings: Settings) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(get_engine(settings))


# Context manager for manual session management
@contextmanager
def manual_session(settings: Settings) -> Generator[Session, None, None]:
    """Context manager for manual session management (scripts, timers)."""
    with get_session_factory(settings)() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
