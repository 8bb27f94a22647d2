"""Database session management."""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from tracker.core.config import settings


def _engine_options(url: str) -> dict:
    """Pool options for the configured backend."""
    if url.startswith("sqlite"):
        # SQLite connections are shared between the request thread and the event loop
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 5,  # Connection pool size
        "max_overflow": 10,  # Max overflow connections
    }


# Create database engine
engine = create_engine(
    settings.database_url,
    echo=False,  # Set to True to log all SQL statements
    **_engine_options(settings.database_url),
)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Yields:
        Database session

    Usage:
        @router.get("/jobs")
        def list_jobs(db: Session = Depends(get_db)):
            return db.query(BackgroundJob).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create any missing tables (migrations remain the source of truth in production)."""
    from tracker.db.base import Base

    Base.metadata.create_all(bind=engine)
