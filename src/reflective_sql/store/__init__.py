"""Store capability interface and the shipped SQLite implementation."""

from reflective_sql.store.bootstrap import ensure_sqlite_ready, is_sqlite_ready
from reflective_sql.store.errors import (
    StoreBusyError,
    StoreClosedError,
    StoreCorruptionError,
    StoreError,
)
from reflective_sql.store.protocol import ExecutableStore, SQLParams, SQLValue, StoreRow
from reflective_sql.store.sqlite import SqliteStore

__all__ = [
    "ExecutableStore",
    "SQLParams",
    "SQLValue",
    "SqliteStore",
    "StoreBusyError",
    "StoreClosedError",
    "StoreCorruptionError",
    "StoreError",
    "StoreRow",
    "ensure_sqlite_ready",
    "is_sqlite_ready",
]
