"""Typed repository binding one store to one entity type."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Generic, TypeVar

from reflective_sql.mapping import engine
from reflective_sql.metadata.descriptors import EntityDescriptor, describe_entity
from reflective_sql.store.protocol import ExecutableStore

T = TypeVar("T")


class EntityRepository(Generic[T]):
    """CRUD facade over the mapping engine for a single entity type.

    The descriptor is derived eagerly, so constructing a repository for an undesignated
    type fails immediately.
    """

    def __init__(self, store: ExecutableStore, entity_type: type[T]) -> None:
        self._store = store
        self._entity_type = entity_type
        self._descriptor = describe_entity(entity_type)

    @property
    def entity_type(self) -> type[T]:
        return self._entity_type

    @property
    def descriptor(self) -> EntityDescriptor:
        return self._descriptor

    @property
    def store(self) -> ExecutableStore:
        return self._store

    def create_table(self) -> str:
        """Execute the table DDL and return its text."""

        ddl = engine.generate_create_table(self._entity_type)
        self._store.execute(ddl, None)
        return ddl

    def add(self, entity: T) -> T:
        return engine.insert(self._store, self._checked(entity))

    def get(self, key_value: object) -> T | None:
        return engine.query_by_id(self._store, self._entity_type, key_value)

    def list_all(self) -> list[T]:
        return engine.query_all(self._store, self._entity_type)

    def find(self, **filters: object) -> list[T]:
        return engine.query_where(self._store, self._entity_type, filters)

    def find_where(self, filters: Mapping[str, object]) -> list[T]:
        return engine.query_where(self._store, self._entity_type, filters)

    def update(self, entity: T) -> int:
        return engine.update(self._store, self._checked(entity))

    def remove(self, entity: T) -> int:
        return engine.delete(self._store, self._checked(entity))

    def remove_by_id(self, key_value: object) -> int:
        return engine.delete_by_id(self._store, self._entity_type, key_value)

    def count(self) -> int:
        return engine.count(self._store, self._entity_type)

    def _checked(self, entity: T) -> T:
        if not isinstance(entity, self._entity_type):
            raise TypeError(
                f"{type(self).__name__}[{self._entity_type.__qualname__}] "
                f"cannot handle {type(entity).__qualname__} instances"
            )
        return entity


__all__ = ["EntityRepository"]
