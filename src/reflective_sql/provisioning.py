"""
reflective-sql — schema provisioning and seeding.

File: src/reflective_sql/provisioning.py
Last updated: 2026-10-16

Purpose
- Discover mapped entity types in a module and create their tables.
- Seed empty tables from in-memory items or YAML fixture files.
- Open a configured SQLite store with its schema in place.

Functional requirements
- Discovery keeps module definition order and ignores undesignated classes.
- Seeding is all-or-nothing and only touches tables that are empty.
- Malformed fixture files fail with ``SeedFileError`` naming the file.

Non-functional requirements
- Re-running provisioning against an existing database is a no-op.
"""

from __future__ import annotations

import contextlib
import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from types import ModuleType
from typing import Any, TypeVar, cast

import yaml

from reflective_sql.errors import MappingError
from reflective_sql.mapping import engine
from reflective_sql.metadata.annotations import table_spec_of
from reflective_sql.metadata.descriptors import describe_entity
from reflective_sql.observability.logging import get_logger
from reflective_sql.store.protocol import ExecutableStore
from reflective_sql.store.sqlite import SqliteStore

T = TypeVar("T")

_logger = get_logger(__name__)


class SeedFileError(ValueError):
    """Raised when a seed file cannot be read or does not match its entity type."""


def discover_entities(module: ModuleType) -> list[type]:
    """Return table-designated dataclasses defined in ``module``, in definition order."""

    found: list[type] = []
    for value in vars(module).values():
        if not isinstance(value, type) or value.__module__ != module.__name__:
            continue
        if table_spec_of(value) is None or not dataclasses.is_dataclass(value):
            continue
        if value not in found:
            found.append(value)
    return found


def create_schema(store: ExecutableStore, entity_types: Iterable[type]) -> list[str]:
    """Execute ``CREATE TABLE IF NOT EXISTS`` for each type and return the statements."""

    statements: list[str] = []
    for entity_type in entity_types:
        ddl = engine.generate_create_table(entity_type)
        store.execute(ddl, None)
        statements.append(ddl)
    _logger.info("schema_created", tables=len(statements))
    return statements


def seed_if_empty(store: ExecutableStore, entity_type: type[T], items: Iterable[T]) -> int:
    """Insert ``items`` in one transaction when the entity's table has no rows.

    Returns the number of inserted items; ``0`` when the table was already populated.
    """

    table_name = describe_entity(entity_type).table_name
    if engine.count(store, entity_type) > 0:
        _logger.info("seed_skipped", table=table_name)
        return 0

    inserted = 0
    with _transaction(store):
        for item in items:
            if not isinstance(item, entity_type):
                raise TypeError(
                    f"seed item for {entity_type.__qualname__} has type {type(item).__qualname__}"
                )
            engine.insert(store, item)
            inserted += 1
    _logger.info("seed_applied", table=table_name, rows=inserted)
    return inserted


def load_seed_file(path: str | Path, entity_type: type[T]) -> list[T]:
    """Load YAML fixture rows keyed by storage name and decode them into instances.

    The document is either a list of mappings or a mapping whose single relevant key is the
    entity's table name.
    """

    seed_path = Path(path)
    descriptor = describe_entity(entity_type)
    try:
        with seed_path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except OSError as exc:
        raise SeedFileError(f"failed to read seed file {seed_path.as_posix()}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise SeedFileError(f"invalid YAML in {seed_path.as_posix()}: {exc}") from exc

    records = _seed_records(payload, descriptor.table_name, seed_path)
    known = set(descriptor.storage_names)
    items: list[T] = []
    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise SeedFileError(
                f"{seed_path.as_posix()}[{index}] must be a mapping, got {type(record).__name__}"
            )
        unknown = sorted(str(key) for key in record if key not in known)
        if unknown:
            raise SeedFileError(
                f"{seed_path.as_posix()}[{index}] has unknown columns for "
                f"{descriptor.table_name}: {', '.join(unknown)}"
            )
        try:
            instance = engine.hydrate_by_name(descriptor, cast(Any, dict(record)))
        except MappingError as exc:
            raise SeedFileError(f"{seed_path.as_posix()}[{index}]: {exc}") from exc
        items.append(cast(T, instance))
    return items


def open_store(
    config: Mapping[str, object],
    *,
    entity_types: Iterable[type] = (),
    logger: Any | None = None,
) -> SqliteStore:
    """Open a store from the ``[store]`` section and create the schema for ``entity_types``."""

    store_section = config.get("store", {})
    if not isinstance(store_section, Mapping):
        raise ValueError("config section 'store' must be a mapping")
    store = SqliteStore.from_config(store_section, logger=logger).open()
    try:
        create_schema(store, entity_types)
    except BaseException:
        store.close()
        raise
    return store


def _seed_records(payload: object, table_name: str, seed_path: Path) -> Sequence[object]:
    if payload is None:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping) and table_name in payload:
        records = payload[table_name]
        if isinstance(records, list):
            return records
    raise SeedFileError(
        f"{seed_path.as_posix()} must be a list of rows or contain a {table_name!r} list"
    )


def _transaction(store: ExecutableStore) -> contextlib.AbstractContextManager[object]:
    transaction = getattr(store, "transaction", None)
    if callable(transaction):
        return cast(contextlib.AbstractContextManager[object], transaction())
    return contextlib.nullcontext()


__all__ = [
    "SeedFileError",
    "create_schema",
    "discover_entities",
    "load_seed_file",
    "open_store",
    "seed_if_empty",
]
