"""Parameterized CRUD statement builders.

Every builder is pure: it reads the descriptor (and instance, where one is involved) and
returns a :class:`Statement`. Parameters are rendered as ``@name`` in the text and bound
from a mapping keyed by ``name``; values are already encoded for the store.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final

from reflective_sql.codec import encode_value
from reflective_sql.constants import IDENTIFIER_PATTERN, LAST_INSERT_ID_SQL, PARAMETER_PREFIX
from reflective_sql.errors import InvalidEntityDefinition, MissingKeyValue
from reflective_sql.metadata.descriptors import ColumnDescriptor, EntityDescriptor

ID_PARAMETER: Final[str] = "id"


@dataclass(frozen=True, slots=True)
class Statement:
    """Statement text plus its named bindings in rendering order."""

    sql: str
    params: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(self.params)


LAST_INSERT_ID: Final[Statement] = Statement(LAST_INSERT_ID_SQL)


def placeholder(name: str) -> str:
    return f"{PARAMETER_PREFIX}{name}"


def _bound(pairs: list[tuple[str, object]]) -> Mapping[str, object]:
    return MappingProxyType({name: encode_value(value) for name, value in pairs})


def _value_of(instance: object, column: ColumnDescriptor) -> object:
    return getattr(instance, column.field_name)


def build_insert(descriptor: EntityDescriptor, instance: object) -> Statement:
    """INSERT for every mapped column except a generated key."""

    columns = descriptor.insertable_columns
    if not columns:
        return Statement(f"INSERT INTO {descriptor.table_name} DEFAULT VALUES;")
    names = ", ".join(column.storage_name for column in columns)
    values = ", ".join(placeholder(column.storage_name) for column in columns)
    return Statement(
        f"INSERT INTO {descriptor.table_name} ({names}) VALUES ({values});",
        _bound([(column.storage_name, _value_of(instance, column)) for column in columns]),
    )


def build_update(descriptor: EntityDescriptor, instance: object) -> Statement:
    """Full-row UPDATE keyed on the primary key."""

    key = descriptor.require_primary_key()
    settable = [column for column in descriptor.columns if not column.is_primary_key]
    if not settable:
        raise InvalidEntityDefinition(
            f"{descriptor.entity_type.__qualname__} has no non-key columns to update"
        )
    assignments = ", ".join(
        f"{column.storage_name} = {placeholder(column.storage_name)}" for column in settable
    )
    pairs = [(column.storage_name, _value_of(instance, column)) for column in settable]
    pairs.append((key.storage_name, _value_of(instance, key)))
    return Statement(
        f"UPDATE {descriptor.table_name} SET {assignments} "
        f"WHERE {key.storage_name} = {placeholder(key.storage_name)};",
        _bound(pairs),
    )


def build_delete(descriptor: EntityDescriptor, instance: object) -> Statement:
    key = descriptor.require_primary_key()
    key_value = _value_of(instance, key)
    if key_value is None:
        raise MissingKeyValue(descriptor.entity_type, key.field_name)
    return Statement(
        f"DELETE FROM {descriptor.table_name} "
        f"WHERE {key.storage_name} = {placeholder(key.storage_name)};",
        _bound([(key.storage_name, key_value)]),
    )


def build_delete_by_id(descriptor: EntityDescriptor, key_value: object) -> Statement:
    key = descriptor.require_primary_key()
    return Statement(
        f"DELETE FROM {descriptor.table_name} "
        f"WHERE {key.storage_name} = {placeholder(ID_PARAMETER)};",
        _bound([(ID_PARAMETER, key_value)]),
    )


def build_select_all(descriptor: EntityDescriptor) -> Statement:
    """SELECT with an explicit column list so rows can be hydrated positionally."""

    names = ", ".join(descriptor.storage_names)
    return Statement(f"SELECT {names} FROM {descriptor.table_name};")


def build_select_by_id(descriptor: EntityDescriptor, key_value: object) -> Statement:
    key = descriptor.require_primary_key()
    return Statement(
        f"SELECT * FROM {descriptor.table_name} "
        f"WHERE {key.storage_name} = {placeholder(ID_PARAMETER)} LIMIT 1;",
        _bound([(ID_PARAMETER, key_value)]),
    )


def build_select_where(
    descriptor: EntityDescriptor, filters: Mapping[str, object]
) -> Statement:
    """Conjunction of equality predicates in filter order.

    ``None`` is bound as a literal null, so such a predicate never matches a row.
    """

    if not filters:
        return Statement(f"SELECT * FROM {descriptor.table_name};")
    for name in filters:
        if not isinstance(name, str) or not IDENTIFIER_PATTERN.fullmatch(name):
            raise ValueError(f"filter key must be a plain SQL identifier, got {name!r}")
    predicates = " AND ".join(f"{name} = {placeholder(name)}" for name in filters)
    return Statement(
        f"SELECT * FROM {descriptor.table_name} WHERE {predicates};",
        _bound(list(filters.items())),
    )


def build_count(descriptor: EntityDescriptor) -> Statement:
    return Statement(f"SELECT COUNT(*) FROM {descriptor.table_name};")


__all__ = [
    "ID_PARAMETER",
    "LAST_INSERT_ID",
    "Statement",
    "build_count",
    "build_delete",
    "build_delete_by_id",
    "build_insert",
    "build_select_all",
    "build_select_by_id",
    "build_select_where",
    "build_update",
    "placeholder",
]
