"""Database layer."""

from colater_mcp.db.session import (
    close_db,
    create_engine,
    get_session_factory,
    init_db,
    make_session_factory,
)

__all__ = [
    "close_db",
    "create_engine",
    "get_session_factory",
    "init_db",
    "make_session_factory",
]
