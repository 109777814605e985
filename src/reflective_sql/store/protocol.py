"""Structural interface the mapping engine requires from a relational store."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

SQLValue = str | int | float | bytes | None
SQLParams = Mapping[str, object]


@runtime_checkable
class StoreRow(Protocol):
    """A result row addressable by column name and by position; nulls are ``None``."""

    def __getitem__(self, key: int | str) -> object: ...

    def keys(self) -> list[str]: ...


@runtime_checkable
class ExecutableStore(Protocol):
    """Capability consumed by the mapping engine. Its lifecycle belongs to the caller."""

    def execute(self, sql: str, params: SQLParams | None = None) -> int:
        """Run a statement and return the number of rows affected."""
        ...

    def execute_scalar(self, sql: str, params: SQLParams | None = None) -> object:
        """Run a statement and return the first column of the first row, or ``None``."""
        ...

    def execute_query(self, sql: str, params: SQLParams | None = None) -> Iterable[StoreRow]:
        """Run a query and return its rows."""
        ...


__all__ = ["ExecutableStore", "SQLParams", "SQLValue", "StoreRow"]
