"""
Database module for the claims and settlement core.

Exports database connection utilities.
"""

from careledger.db.connection import (
    build_session_maker,
    check_db_connection,
    close_db_connection,
    flush_changes,
    get_engine,
    get_session,
    get_session_maker,
)

__all__ = [
    "build_session_maker",
    "check_db_connection",
    "close_db_connection",
    "flush_changes",
    "get_engine",
    "get_session",
    "get_session_maker",
]
