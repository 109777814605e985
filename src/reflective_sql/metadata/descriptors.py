"""Entity and column descriptors derived from annotated dataclasses.

Descriptors are pure functions of the entity type. They are memoized in a process-wide
cache keyed weakly by type identity; concurrent population is harmless because every
writer computes the same value.
"""

from __future__ import annotations

import dataclasses
import threading
import types
import typing
import weakref
from dataclasses import MISSING, dataclass
from typing import Any, Final, Union

from reflective_sql.errors import (
    InvalidEntityDefinition,
    MissingTableMetadata,
    MultiplePrimaryKeysDefined,
    NoPrimaryKeyDefined,
)
from reflective_sql.metadata.annotations import (
    ForeignKeyReference,
    column_spec_of,
    table_spec_of,
)

_NONE_TYPE: Final[type] = type(None)

_CACHE_LOCK = threading.Lock()
_DESCRIPTOR_CACHE: weakref.WeakKeyDictionary[type, EntityDescriptor] = (
    weakref.WeakKeyDictionary()
)


@dataclass(frozen=True, slots=True)
class ColumnDescriptor:
    """One persisted field: storage metadata plus the resolved native value type."""

    field_name: str
    storage_name: str
    storage_type: str
    is_nullable: bool = True
    is_primary_key: bool = False
    is_auto_increment: bool = False
    foreign_key: ForeignKeyReference | None = None
    value_type: Any = Any
    native_nullable: bool = True
    has_default: bool = False
    init: bool = True

    @property
    def is_generated_key(self) -> bool:
        return self.is_primary_key and self.is_auto_increment


@dataclass(frozen=True, slots=True)
class EntityDescriptor:
    """Table name and ordered column descriptors for one entity type."""

    entity_type: type
    table_name: str
    columns: tuple[ColumnDescriptor, ...]
    frozen: bool = False
    unmapped_required: tuple[str, ...] = ()

    @property
    def primary_key(self) -> ColumnDescriptor | None:
        for column in self.columns:
            if column.is_primary_key:
                return column
        return None

    def require_primary_key(self) -> ColumnDescriptor:
        key = self.primary_key
        if key is None:
            raise NoPrimaryKeyDefined(self.entity_type)
        return key

    @property
    def insertable_columns(self) -> tuple[ColumnDescriptor, ...]:
        return tuple(column for column in self.columns if not column.is_generated_key)

    @property
    def generated_key(self) -> ColumnDescriptor | None:
        generated = [column for column in self.columns if column.is_generated_key]
        if len(generated) != 1:
            return None
        return generated[0]

    @property
    def storage_names(self) -> tuple[str, ...]:
        return tuple(column.storage_name for column in self.columns)

    def column_for_storage_name(self, storage_name: str) -> ColumnDescriptor | None:
        for column in self.columns:
            if column.storage_name == storage_name:
                return column
        return None

    def is_writable(self, column: ColumnDescriptor) -> bool:
        del column
        return not self.frozen


def describe_entity(target: type | object) -> EntityDescriptor:
    """Return the descriptor for an entity type or instance.

    Raises ``MissingTableMetadata`` before anything else is inspected when the type has no
    table designation.
    """

    entity_type = target if isinstance(target, type) else type(target)
    with _CACHE_LOCK:
        cached = _DESCRIPTOR_CACHE.get(entity_type)
    if cached is not None:
        return cached

    descriptor = _build_descriptor(entity_type)
    with _CACHE_LOCK:
        _DESCRIPTOR_CACHE[entity_type] = descriptor
    return descriptor


def clear_descriptor_cache() -> None:
    with _CACHE_LOCK:
        _DESCRIPTOR_CACHE.clear()


def split_optional(annotation: object) -> tuple[Any, bool]:
    """Split ``X | None`` into ``(X, True)``; other annotations map to ``(annotation, False)``.

    ``Any`` and ``object`` are treated as nullable. Unions of several non-None members are
    returned unchanged and fail coercion later.
    """

    if annotation is Any or annotation is object:
        return annotation, True
    if annotation is None or annotation is _NONE_TYPE:
        return Any, True

    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = typing.get_args(annotation)
        non_none = tuple(member for member in members if member is not _NONE_TYPE)
        nullable = len(non_none) != len(members)
        if len(non_none) == 1:
            return non_none[0], nullable
        return annotation, nullable
    return annotation, False


def _build_descriptor(entity_type: type) -> EntityDescriptor:
    spec = table_spec_of(entity_type)
    if spec is None:
        raise MissingTableMetadata(entity_type)
    if not dataclasses.is_dataclass(entity_type):
        raise InvalidEntityDefinition(
            f"{entity_type.__qualname__} must be a dataclass to be mapped; "
            "apply @dataclass beneath @table(...)"
        )

    hints = _resolve_type_hints(entity_type)
    columns: list[ColumnDescriptor] = []
    unmapped_required: list[str] = []
    seen_storage_names: set[str] = set()

    for entity_field in dataclasses.fields(entity_type):
        has_default = (
            entity_field.default is not MISSING or entity_field.default_factory is not MISSING
        )
        column_spec = column_spec_of(entity_field)
        if column_spec is None:
            if entity_field.init and not has_default:
                unmapped_required.append(entity_field.name)
            continue

        if column_spec.name in seen_storage_names:
            raise InvalidEntityDefinition(
                f"{entity_type.__qualname__} maps column {column_spec.name!r} more than once"
            )
        seen_storage_names.add(column_spec.name)

        value_type, native_nullable = split_optional(hints.get(entity_field.name, Any))
        columns.append(
            ColumnDescriptor(
                field_name=entity_field.name,
                storage_name=column_spec.name,
                storage_type=column_spec.storage_type,
                is_nullable=column_spec.nullable,
                is_primary_key=column_spec.primary_key,
                is_auto_increment=column_spec.auto_increment,
                foreign_key=column_spec.references,
                value_type=value_type,
                native_nullable=native_nullable,
                has_default=has_default,
                init=entity_field.init,
            )
        )

    primary_keys = tuple(column.field_name for column in columns if column.is_primary_key)
    if len(primary_keys) > 1:
        raise MultiplePrimaryKeysDefined(entity_type, primary_keys)

    params = getattr(entity_type, "__dataclass_params__", None)
    return EntityDescriptor(
        entity_type=entity_type,
        table_name=spec.name,
        columns=tuple(columns),
        frozen=bool(getattr(params, "frozen", False)),
        unmapped_required=tuple(unmapped_required),
    )


def _resolve_type_hints(entity_type: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(entity_type)
    except (NameError, TypeError) as exc:
        raise InvalidEntityDefinition(
            f"cannot resolve field annotations of {entity_type.__qualname__}: {exc}"
        ) from exc


__all__ = [
    "ColumnDescriptor",
    "EntityDescriptor",
    "clear_descriptor_cache",
    "describe_entity",
    "split_optional",
]
