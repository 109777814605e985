"""
reflective-sql — mapping engine

File: src/reflective_sql/mapping/engine.py
Last updated: 2026-10-16

Purpose
- Stateless CRUD operations that turn entity types and instances into statements,
  run them against an injected ``ExecutableStore`` and hydrate typed results.

Functional requirements
- Every operation derives the descriptor first, so an undesignated type fails with
  ``MissingTableMetadata`` before any SQL is built.
- ``insert`` writes a generated key back when exactly one column is primary key and
  auto-increment and the instance is mutable.
- ``query_all`` hydrates by position; ``query_by_id`` and ``query_where`` by column name.
- Store failures propagate unmodified; nothing here logs or retries.

Non-functional requirements
- No state is kept between calls; concurrent callers need only a thread-safe store.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TypeVar, cast

from reflective_sql.codec import UNSET, decode_column
from reflective_sql.errors import InvalidEntityDefinition
from reflective_sql.metadata.descriptors import (
    ColumnDescriptor,
    EntityDescriptor,
    describe_entity,
)
from reflective_sql.sql.schema import build_create_table
from reflective_sql.sql.statements import (
    LAST_INSERT_ID,
    Statement,
    build_count,
    build_delete,
    build_delete_by_id,
    build_insert,
    build_select_all,
    build_select_by_id,
    build_select_where,
    build_update,
)
from reflective_sql.store.protocol import ExecutableStore, StoreRow

T = TypeVar("T")


def generate_create_table(entity_type: type) -> str:
    """Return the ``CREATE TABLE IF NOT EXISTS`` statement for ``entity_type``."""

    return build_create_table(describe_entity(entity_type))


def insert(store: ExecutableStore, instance: T) -> T:
    """Insert ``instance`` and return it, with its generated key written back if any."""

    descriptor = describe_entity(instance)
    _run(store, build_insert(descriptor, instance))

    generated = descriptor.generated_key
    if generated is not None and descriptor.is_writable(generated):
        raw = store.execute_scalar(LAST_INSERT_ID.sql, LAST_INSERT_ID.params)
        value = decode_column(raw, generated)
        if value is not UNSET:
            setattr(instance, generated.field_name, value)
    return instance


def update(store: ExecutableStore, instance: object) -> int:
    """Rewrite every non-key column of the row matching the instance's key."""

    return _run(store, build_update(describe_entity(instance), instance))


def delete(store: ExecutableStore, instance: object) -> int:
    """Delete the row matching the instance's key; a ``None`` key is rejected up front."""

    return _run(store, build_delete(describe_entity(instance), instance))


def delete_by_id(store: ExecutableStore, entity_type: type, key_value: object) -> int:
    return _run(store, build_delete_by_id(describe_entity(entity_type), key_value))


def query_by_id(store: ExecutableStore, entity_type: type[T], key_value: object) -> T | None:
    descriptor = describe_entity(entity_type)
    rows = _query(store, build_select_by_id(descriptor, key_value))
    if not rows:
        return None
    return cast(T, hydrate_by_name(descriptor, rows[0]))


def query_all(store: ExecutableStore, entity_type: type[T]) -> list[T]:
    descriptor = describe_entity(entity_type)
    rows = _query(store, build_select_all(descriptor))
    return [cast(T, hydrate_by_position(descriptor, row)) for row in rows]


def query_where(
    store: ExecutableStore,
    entity_type: type[T],
    filters: Mapping[str, object],
) -> list[T]:
    """Return rows matching every ``column = value`` pair in ``filters``."""

    descriptor = describe_entity(entity_type)
    rows = _query(store, build_select_where(descriptor, filters))
    return [cast(T, hydrate_by_name(descriptor, row)) for row in rows]


def count(store: ExecutableStore, entity_type: type) -> int:
    statement = build_count(describe_entity(entity_type))
    raw = store.execute_scalar(statement.sql, statement.params)
    return int(cast(int, raw or 0))


def hydrate_by_position(descriptor: EntityDescriptor, row: StoreRow) -> object:
    """Build an instance from a row whose columns follow declaration order."""

    return hydrate(
        descriptor,
        ((column, row[index]) for index, column in enumerate(descriptor.columns)),
    )


def hydrate_by_name(descriptor: EntityDescriptor, row: StoreRow) -> object:
    """Build an instance from a row addressed by storage name; absent columns are skipped."""

    available = set(row.keys())
    return hydrate(
        descriptor,
        (
            (column, row[column.storage_name])
            for column in descriptor.columns
            if column.storage_name in available
        ),
    )


def hydrate(
    descriptor: EntityDescriptor,
    values: Iterable[tuple[ColumnDescriptor, object]],
) -> object:
    """Decode raw column values and construct an instance of the descriptor's type.

    Fields skipped by the codec keep their dataclass defaults. Columns declared with
    ``init=False`` are assigned after construction.
    """

    entity_type = descriptor.entity_type
    if descriptor.unmapped_required:
        missing = ", ".join(descriptor.unmapped_required)
        raise InvalidEntityDefinition(
            f"{entity_type.__qualname__} cannot be hydrated: required fields without "
            f"column metadata ({missing})"
        )

    init_values: dict[str, object] = {}
    late_values: dict[str, object] = {}
    for column, raw in values:
        decoded = decode_column(raw, column)
        if decoded is UNSET:
            continue
        target = init_values if column.init else late_values
        target[column.field_name] = decoded

    try:
        instance = entity_type(**init_values)
    except TypeError as exc:
        raise InvalidEntityDefinition(
            f"cannot construct {entity_type.__qualname__} from stored row: {exc}"
        ) from exc
    for field_name, value in late_values.items():
        object.__setattr__(instance, field_name, value)
    return instance


def _unpack(statement: Statement) -> tuple[str, Mapping[str, object]]:
    return statement.sql, statement.params


def _run(store: ExecutableStore, statement: Statement) -> int:
    return store.execute(*_unpack(statement))


def _query(store: ExecutableStore, statement: Statement) -> list[StoreRow]:
    return list(store.execute_query(*_unpack(statement)))


__all__ = [
    "count",
    "delete",
    "delete_by_id",
    "generate_create_table",
    "hydrate",
    "hydrate_by_name",
    "hydrate_by_position",
    "insert",
    "query_all",
    "query_by_id",
    "query_where",
    "update",
]
