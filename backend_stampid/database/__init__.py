"""
Database layer — accounts, entries and votes (SQLAlchemy).

SQLite by default; PostgreSQL via STAMPID_DB_URL / DATABASE_URL.
"""

from backend_stampid.database.database import (
    init_db,
    reset_engine_for_test,
    session_scope,
)
from backend_stampid.database.models import MAX_ROW_ID, Account, Base, Entry, Vote

__all__ = [
    "MAX_ROW_ID",
    "Account",
    "Base",
    "Entry",
    "Vote",
    "init_db",
    "reset_engine_for_test",
    "session_scope",
]
