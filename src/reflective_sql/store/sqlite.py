"""
reflective-sql — SQLite store

File: src/reflective_sql/store/sqlite.py
Last updated: 2026-10-16

Purpose
- Concrete ``ExecutableStore`` over the standard library ``sqlite3`` module.
- Connection lifecycle, pragma configuration and bounded busy retries.

Functional requirements
- One long-lived connection per store so ``last_insert_rowid()`` is read on the
  connection that performed the insert.
- Integrity violations surface as ``sqlite3.IntegrityError``, unwrapped.
- Nested ``transaction()`` blocks map to savepoints.

Non-functional requirements
- Statements are logged at DEBUG with parameter names only, never values.
- Access to the connection is serialized with a re-entrant lock.
"""

from __future__ import annotations

import sqlite3
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Final

from reflective_sql.constants import MEMORY_DATABASE
from reflective_sql.observability.logging import get_logger
from reflective_sql.store.bootstrap import ensure_sqlite_ready
from reflective_sql.store.errors import (
    StoreBusyError,
    StoreClosedError,
    StoreCorruptionError,
    StoreError,
)
from reflective_sql.store.protocol import SQLParams

DEFAULT_BUSY_TIMEOUT_MS: Final[int] = 5_000
DEFAULT_BUSY_RETRY_LIMIT: Final[int] = 4
DEFAULT_BUSY_RETRY_BACKOFF_MS: Final[int] = 25
DEFAULT_JOURNAL_MODE: Final[str] = "wal"
JOURNAL_MODES: Final[tuple[str, ...]] = ("wal", "delete", "truncate", "memory")

_SQLITE_BUSY_CODES: Final[frozenset[int]] = frozenset(
    code
    for code in (
        getattr(sqlite3, "SQLITE_BUSY", None),
        getattr(sqlite3, "SQLITE_BUSY_RECOVERY", None),
        getattr(sqlite3, "SQLITE_BUSY_SNAPSHOT", None),
        getattr(sqlite3, "SQLITE_LOCKED", None),
        getattr(sqlite3, "SQLITE_LOCKED_SHAREDCACHE", None),
    )
    if isinstance(code, int)
)

_SQLITE_CORRUPTION_CODES: Final[frozenset[int]] = frozenset(
    code
    for code in (
        getattr(sqlite3, "SQLITE_CORRUPT", None),
        getattr(sqlite3, "SQLITE_NOTADB", None),
    )
    if isinstance(code, int)
)

_BUSY_SUBSTRINGS: Final[tuple[str, ...]] = (
    "database is locked",
    "database table is locked",
    "database schema is locked",
)

_CORRUPTION_SUBSTRINGS: Final[tuple[str, ...]] = (
    "database disk image is malformed",
    "malformed database",
    "file is not a database",
)


class SqliteStore:
    """SQLite-backed store with pragma setup, savepoint transactions and busy retries."""

    def __init__(
        self,
        path: str | Path = MEMORY_DATABASE,
        *,
        foreign_keys: bool = True,
        busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
        busy_retry_limit: int = DEFAULT_BUSY_RETRY_LIMIT,
        busy_retry_backoff_ms: int = DEFAULT_BUSY_RETRY_BACKOFF_MS,
        journal_mode: str = DEFAULT_JOURNAL_MODE,
        logger: Any | None = None,
    ) -> None:
        if busy_timeout_ms < 0:
            raise ValueError("busy_timeout_ms must be >= 0")
        if busy_retry_limit < 0:
            raise ValueError("busy_retry_limit must be >= 0")
        if busy_retry_backoff_ms < 0:
            raise ValueError("busy_retry_backoff_ms must be >= 0")
        normalized_mode = journal_mode.strip().lower()
        if normalized_mode not in JOURNAL_MODES:
            allowed = ", ".join(JOURNAL_MODES)
            raise ValueError(f"journal_mode must be one of: {allowed}; got {journal_mode!r}")

        self._in_memory = str(path) == MEMORY_DATABASE
        self._path: str | Path = MEMORY_DATABASE if self._in_memory else Path(path).expanduser()
        self._foreign_keys = foreign_keys
        self._busy_timeout_ms = busy_timeout_ms
        self._busy_retry_limit = busy_retry_limit
        self._busy_retry_backoff_ms = busy_retry_backoff_ms
        self._journal_mode = normalized_mode
        self._logger = logger if logger is not None else get_logger(__name__)
        self._lock = threading.RLock()
        self._conn: sqlite3.Connection | None = None
        self._savepoint_counter = 0

    @classmethod
    def from_config(
        cls,
        store_config: Mapping[str, object],
        *,
        logger: Any | None = None,
    ) -> SqliteStore:
        """Build a store from a validated ``[store]`` configuration section."""

        return cls(
            str(store_config.get("path", MEMORY_DATABASE)),
            foreign_keys=bool(store_config.get("foreign_keys", True)),
            busy_timeout_ms=int(store_config.get("busy_timeout_ms", DEFAULT_BUSY_TIMEOUT_MS)),  # type: ignore[call-overload]
            busy_retry_limit=int(store_config.get("busy_retry_limit", DEFAULT_BUSY_RETRY_LIMIT)),  # type: ignore[call-overload]
            busy_retry_backoff_ms=int(
                store_config.get("busy_retry_backoff_ms", DEFAULT_BUSY_RETRY_BACKOFF_MS)  # type: ignore[call-overload]
            ),
            journal_mode=str(store_config.get("journal_mode", DEFAULT_JOURNAL_MODE)),
            logger=logger,
        )

    @property
    def path(self) -> str | Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> SqliteStore:
        """Open and configure the connection; a second call is a no-op."""

        with self._lock:
            if self._conn is not None:
                return self
            ensure_sqlite_ready(logger=self._logger)
            if not self._in_memory:
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(
                    self._path,
                    timeout=self._busy_timeout_ms / 1000.0,
                    isolation_level=None,
                    check_same_thread=False,
                )
            except sqlite3.Error as exc:
                self._raise_actionable_error(exc, operation="open")
            conn.row_factory = sqlite3.Row
            try:
                self._configure_connection(conn)
            except BaseException:
                conn.close()
                raise
            self._conn = conn
            self._logger.info(
                "store_opened",
                path=str(self._path),
                journal_mode=self._journal_mode if not self._in_memory else "memory",
                foreign_keys=self._foreign_keys,
            )
            return self

    def close(self) -> None:
        with self._lock:
            conn, self._conn = self._conn, None
            if conn is None:
                return
            conn.close()
            self._logger.info("store_closed", path=str(self._path))

    def __enter__(self) -> SqliteStore:
        return self.open()

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        del exc_type, exc, tb
        self.close()

    def execute(self, sql: str, params: SQLParams | None = None) -> int:
        """Execute a parameterized statement and return affected row count."""

        with self._lock:
            cursor = self._execute_with_retry(
                self._require_connection(), sql, params, operation="execute statement"
            )
            return cursor.rowcount

    def execute_scalar(self, sql: str, params: SQLParams | None = None) -> object:
        """Return the first column of the first row, or ``None`` for an empty result."""

        with self._lock:
            cursor = self._execute_with_retry(
                self._require_connection(), sql, params, operation="execute scalar"
            )
            row = cursor.fetchone()
            return None if row is None else row[0]

    def execute_query(self, sql: str, params: SQLParams | None = None) -> list[sqlite3.Row]:
        """Run a query and return every row; rows support name and position access."""

        with self._lock:
            cursor = self._execute_with_retry(
                self._require_connection(), sql, params, operation="execute query"
            )
            return cursor.fetchall()

    @contextmanager
    def transaction(self, *, immediate: bool = True) -> Iterator[SqliteStore]:
        """Run statements inside an atomic transaction with savepoint support."""

        with self._lock:
            conn = self._require_connection()
            if conn.in_transaction:
                savepoint = self._next_savepoint_name()
                self._execute_with_retry(conn, f"SAVEPOINT {savepoint}", None, operation="savepoint")
                try:
                    yield self
                except Exception:
                    self._execute_with_retry(
                        conn,
                        f"ROLLBACK TO SAVEPOINT {savepoint}",
                        None,
                        operation="rollback to savepoint",
                    )
                    self._execute_with_retry(
                        conn,
                        f"RELEASE SAVEPOINT {savepoint}",
                        None,
                        operation="release savepoint",
                    )
                    raise
                else:
                    self._execute_with_retry(
                        conn,
                        f"RELEASE SAVEPOINT {savepoint}",
                        None,
                        operation="release savepoint",
                    )
                return

            begin_sql = "BEGIN IMMEDIATE" if immediate else "BEGIN"
            self._execute_with_retry(conn, begin_sql, None, operation="begin transaction")
            try:
                yield self
            except Exception:
                self._execute_with_retry(conn, "ROLLBACK", None, operation="rollback transaction")
                raise
            else:
                self._execute_with_retry(conn, "COMMIT", None, operation="commit transaction")

    def table_exists(self, table_name: str) -> bool:
        found = self.execute_scalar(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = @name;",
            {"name": table_name},
        )
        return found is not None

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreClosedError(f"store for {self._path} is not open; call open() first")
        return self._conn

    def _configure_connection(self, conn: sqlite3.Connection) -> None:
        flag = "ON" if self._foreign_keys else "OFF"
        self._execute_with_retry(conn, f"PRAGMA foreign_keys={flag}", None, operation="pragma")
        self._execute_with_retry(
            conn, f"PRAGMA busy_timeout={self._busy_timeout_ms}", None, operation="pragma"
        )
        if self._in_memory:
            return
        journal_row = self._execute_with_retry(
            conn, f"PRAGMA journal_mode={self._journal_mode}", None, operation="pragma"
        ).fetchone()
        if journal_row is None:
            raise StoreError("failed to configure journal_mode")
        journal_mode = str(journal_row[0]).lower()
        if journal_mode != self._journal_mode:
            raise StoreError(
                f"journal_mode must be {self._journal_mode!r} for {self._path}, got {journal_mode!r}"
            )

    def _next_savepoint_name(self) -> str:
        self._savepoint_counter += 1
        return f"sp_{self._savepoint_counter}"

    def _execute_with_retry(
        self,
        conn: sqlite3.Connection,
        sql: str,
        params: SQLParams | None,
        *,
        operation: str,
    ) -> sqlite3.Cursor:
        bound = dict(params) if params else {}
        self._logger.debug("store_statement", operation=operation, sql=sql, params=sorted(bound))
        for attempt in range(self._busy_retry_limit + 1):
            try:
                return conn.execute(sql, bound)
            except sqlite3.IntegrityError:
                raise
            except sqlite3.Error as exc:
                if self._is_busy_error(exc) and attempt < self._busy_retry_limit:
                    time.sleep((self._busy_retry_backoff_ms / 1000.0) * float(2**attempt))
                    continue
                self._raise_actionable_error(exc, operation=operation)
        raise StoreBusyError(f"{operation} exhausted retries unexpectedly")

    def _is_busy_error(self, exc: sqlite3.Error) -> bool:
        code = getattr(exc, "sqlite_errorcode", None)
        if isinstance(code, int) and code in _SQLITE_BUSY_CODES:
            return True
        message = str(exc).lower()
        return any(fragment in message for fragment in _BUSY_SUBSTRINGS)

    def _is_corruption_error(self, exc: sqlite3.Error) -> bool:
        code = getattr(exc, "sqlite_errorcode", None)
        if isinstance(code, int) and code in _SQLITE_CORRUPTION_CODES:
            return True
        message = str(exc).lower()
        return any(fragment in message for fragment in _CORRUPTION_SUBSTRINGS)

    def _raise_actionable_error(self, exc: sqlite3.Error, *, operation: str) -> None:
        if self._is_corruption_error(exc):
            raise StoreCorruptionError(
                f"{operation} failed for {self._path}: {exc}. "
                "Run `PRAGMA integrity_check` and restore from a backup if needed."
            ) from exc
        if self._is_busy_error(exc):
            raise StoreBusyError(
                f"{operation} hit SQLITE_BUSY for {self._path} after "
                f"{self._busy_retry_limit + 1} attempt(s): {exc}"
            ) from exc
        raise StoreError(f"{operation} failed for {self._path}: {exc}") from exc


__all__ = [
    "DEFAULT_BUSY_RETRY_BACKOFF_MS",
    "DEFAULT_BUSY_RETRY_LIMIT",
    "DEFAULT_BUSY_TIMEOUT_MS",
    "DEFAULT_JOURNAL_MODE",
    "JOURNAL_MODES",
    "SqliteStore",
]
