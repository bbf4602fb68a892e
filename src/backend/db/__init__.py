"""Database module."""

from db.session import async_session_maker, close_db, get_db, init_db

__all__ = ["get_db", "init_db", "close_db", "async_session_maker"]
