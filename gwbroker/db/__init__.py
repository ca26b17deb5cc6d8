"""Database layer."""

from gwbroker.db.session import close_db, get_async_session, init_db

__all__ = ["close_db", "get_async_session", "init_db"]
