"""Database package — async engine, per-request session dependency, declarative Base."""
from cafe_erp.db.base import Base, async_session_factory, engine, get_db

__all__ = ["Base", "async_session_factory", "engine", "get_db"]
