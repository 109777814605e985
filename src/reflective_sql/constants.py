"""Stable constants shared across the mapping core and the SQLite store."""

from __future__ import annotations

import re
from typing import Final

# SQL identifier and type-name shapes accepted in entity metadata.
IDENTIFIER_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
STORAGE_TYPE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[A-Za-z][A-Za-z0-9_]*(?: [A-Za-z][A-Za-z0-9_]*)*(?:\(\s*\d+\s*(?:,\s*\d+\s*)?\))?$"
)

# AUTOINCREMENT is only legal on an INTEGER PRIMARY KEY (rowid alias).
AUTO_INCREMENT_STORAGE_TYPE: Final[str] = "INTEGER"

# Named parameters are rendered as ``@name`` and bound from ``{"name": value}``.
PARAMETER_PREFIX: Final[str] = "@"

LAST_INSERT_ID_SQL: Final[str] = "SELECT last_insert_rowid();"

# Oldest SQLite library with enforced foreign keys and AUTOINCREMENT.
MIN_SQLITE_VERSION: Final[tuple[int, int, int]] = (3, 6, 19)

MEMORY_DATABASE: Final[str] = ":memory:"

__all__ = [
    "AUTO_INCREMENT_STORAGE_TYPE",
    "IDENTIFIER_PATTERN",
    "LAST_INSERT_ID_SQL",
    "MEMORY_DATABASE",
    "MIN_SQLITE_VERSION",
    "PARAMETER_PREFIX",
    "STORAGE_TYPE_PATTERN",
]
