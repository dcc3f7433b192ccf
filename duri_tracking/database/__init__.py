"""Database module for SQLAlchemy models and session management."""

from duri_tracking.database.base import Base, async_session_maker, engine
from duri_tracking.database.client import DatabaseClient, close_database, db_client, init_database
from duri_tracking.database.models import Company, UserProfile

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "DatabaseClient",
    "db_client",
    "init_database",
    "close_database",
    "Company",
    "UserProfile",
]
