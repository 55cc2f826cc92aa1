"""Database package — async SQLAlchemy engine, session factory, Base, Mock DB fallback."""
from purchasing.db.base import Base, async_session_factory, engine, get_db
from purchasing.db.mock import MockDB, mock_db

__all__ = ["Base", "MockDB", "async_session_factory", "engine", "get_db", "mock_db"]
