"""Store-level error taxonomy; SQLite integrity violations are never wrapped."""

from __future__ import annotations


class StoreError(RuntimeError):
    """Base class for store errors."""


class StoreBusyError(StoreError):
    """Raised when bounded busy retries are exhausted."""


class StoreCorruptionError(StoreError):
    """Raised when SQLite reports possible corruption."""


class StoreClosedError(StoreError):
    """Raised when a statement is issued against a store that is not open."""


__all__ = [
    "StoreBusyError",
    "StoreClosedError",
    "StoreCorruptionError",
    "StoreError",
]
