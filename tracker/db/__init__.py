"""Database package."""

from tracker.db.base import Base
from tracker.db.session import SessionLocal, engine, get_db, init_db

__all__ = ["Base", "SessionLocal", "engine", "get_db", "init_db"]
