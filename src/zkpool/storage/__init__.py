"""Storage layer for persistent data."""

from zkpool.storage.database import (
    DatabaseManager,
    EventRecord,
    EventKind,
    Base,
    get_db_manager,
    reset_db_manager,
)

__all__ = [
    "DatabaseManager",
    "EventRecord",
    "EventKind",
    "Base",
    "get_db_manager",
    "reset_db_manager",
]
