"""One-time SQLite driver readiness check.

The latch is process-wide and idempotent: the first caller verifies the linked SQLite
library and logs its version, concurrent callers wait on the lock, later callers return
immediately.
"""

from __future__ import annotations

import sqlite3
import threading
from typing import Any

from reflective_sql.constants import MIN_SQLITE_VERSION
from reflective_sql.observability.logging import get_logger
from reflective_sql.store.errors import StoreError

_READY_LOCK = threading.Lock()
_ready = False


def is_sqlite_ready() -> bool:
    return _ready


def ensure_sqlite_ready(*, logger: Any | None = None) -> None:
    """Verify the SQLite library once per process; raise ``StoreError`` if it is too old."""

    global _ready
    if _ready:
        return
    with _READY_LOCK:
        if _ready:
            return
        version = tuple(sqlite3.sqlite_version_info)
        if version < MIN_SQLITE_VERSION:
            required = ".".join(str(part) for part in MIN_SQLITE_VERSION)
            raise StoreError(
                f"SQLite {sqlite3.sqlite_version} is too old; "
                f"foreign keys and AUTOINCREMENT need >= {required}"
            )
        log = logger if logger is not None else get_logger(__name__)
        log.info("sqlite_ready", sqlite_version=sqlite3.sqlite_version)
        _ready = True


def _reset_for_tests() -> None:
    global _ready
    with _READY_LOCK:
        _ready = False


__all__ = ["ensure_sqlite_ready", "is_sqlite_ready"]
