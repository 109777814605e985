"""Declarative markers that attach table and column metadata to dataclasses.

Usage::

    @table("users")
    @dataclass
    class User:
        id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
        email: str = column("email", "TEXT", nullable=False, default="")
        team_id: int | None = column(
            "team_id", "INTEGER", references=foreign_key("teams", "id"), default=None
        )
        scratch: str = ""  # not persisted

The markers only record metadata; nothing about the dataclass' runtime behavior changes.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable
from dataclasses import MISSING, dataclass
from typing import Any, Final, TypeVar

from reflective_sql.constants import IDENTIFIER_PATTERN, STORAGE_TYPE_PATTERN
from reflective_sql.errors import InvalidEntityDefinition

COLUMN_METADATA_KEY: Final[str] = "reflective_sql.column"
TABLE_ATTRIBUTE: Final[str] = "__reflective_table__"

TType = TypeVar("TType", bound=type)


@dataclass(frozen=True, slots=True)
class ForeignKeyReference:
    referenced_table: str
    referenced_column: str


@dataclass(frozen=True, slots=True)
class TableSpec:
    name: str


@dataclass(frozen=True, slots=True)
class ColumnSpec:
    """Column metadata exactly as declared on a dataclass field."""

    name: str
    storage_type: str
    nullable: bool = True
    primary_key: bool = False
    auto_increment: bool = False
    references: ForeignKeyReference | None = None


def validate_identifier(value: object, *, what: str) -> str:
    """Return ``value`` when it is a plain SQL identifier, else raise."""

    if not isinstance(value, str) or not IDENTIFIER_PATTERN.fullmatch(value):
        raise InvalidEntityDefinition(f"{what} must be a plain SQL identifier, got {value!r}")
    return value


def validate_storage_type(value: object) -> str:
    if not isinstance(value, str) or not STORAGE_TYPE_PATTERN.fullmatch(value.strip()):
        raise InvalidEntityDefinition(
            f"storage type must be a SQL type name such as INTEGER or VARCHAR(32), got {value!r}"
        )
    return value.strip()


def table(name: str) -> Callable[[TType], TType]:
    """Class decorator designating the table an entity type maps to."""

    spec = TableSpec(name=validate_identifier(name, what="table name"))

    def decorate(cls: TType) -> TType:
        if not isinstance(cls, type):
            raise TypeError(f"@table(...) must decorate a class, got {type(cls).__name__}")
        setattr(cls, TABLE_ATTRIBUTE, spec)
        return cls

    return decorate


def foreign_key(referenced_table: str, referenced_column: str) -> ForeignKeyReference:
    return ForeignKeyReference(
        referenced_table=validate_identifier(referenced_table, what="referenced table"),
        referenced_column=validate_identifier(referenced_column, what="referenced column"),
    )


def column(
    name: str,
    storage_type: str,
    *,
    nullable: bool = True,
    primary_key: bool = False,
    auto_increment: bool = False,
    references: ForeignKeyReference | None = None,
    default: Any = MISSING,
    default_factory: Callable[[], Any] | Any = MISSING,
    init: bool = True,
    repr: bool = True,
    compare: bool = True,
) -> Any:
    """Declare a persisted dataclass field.

    Returns a ``dataclasses.field`` carrying a :class:`ColumnSpec` in its metadata, so it is
    used in place of ``field(...)``. The auto-increment invariant is checked when the schema
    is generated, not here.
    """

    if references is not None and not isinstance(references, ForeignKeyReference):
        raise TypeError("references must be built with foreign_key(table, column)")
    spec = ColumnSpec(
        name=validate_identifier(name, what="column name"),
        storage_type=validate_storage_type(storage_type),
        nullable=bool(nullable),
        primary_key=bool(primary_key),
        auto_increment=bool(auto_increment),
        references=references,
    )
    options: dict[str, Any] = {
        "init": init,
        "repr": repr,
        "compare": compare,
        "metadata": {COLUMN_METADATA_KEY: spec},
    }
    if default is not MISSING:
        options["default"] = default
    if default_factory is not MISSING:
        options["default_factory"] = default_factory
    return dataclasses.field(**options)


def table_spec_of(entity_type: type) -> TableSpec | None:
    spec = getattr(entity_type, TABLE_ATTRIBUTE, None)
    return spec if isinstance(spec, TableSpec) else None


def column_spec_of(entity_field: dataclasses.Field[Any]) -> ColumnSpec | None:
    spec = entity_field.metadata.get(COLUMN_METADATA_KEY)
    return spec if isinstance(spec, ColumnSpec) else None


__all__ = [
    "COLUMN_METADATA_KEY",
    "TABLE_ATTRIBUTE",
    "ColumnSpec",
    "ForeignKeyReference",
    "TableSpec",
    "column",
    "column_spec_of",
    "foreign_key",
    "table",
    "table_spec_of",
    "validate_identifier",
    "validate_storage_type",
]
