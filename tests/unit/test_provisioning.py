"""Entity discovery, schema creation, seeding and seed-file loading."""

from __future__ import annotations

import sqlite3
import sys
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

import pytest

from reflective_sql import InvalidAutoIncrementSpec, column, foreign_key, table
from reflective_sql.mapping import count, query_all
from reflective_sql.provisioning import (
    SeedFileError,
    create_schema,
    discover_entities,
    load_seed_file,
    open_store,
    seed_if_empty,
)
from reflective_sql.store import SqliteStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@table("authors")
@dataclass
class Author:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    name: str = column("name", "TEXT", nullable=False, default="")


@table("books")
@dataclass
class Book:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    title: str | None = column("title", "TEXT", nullable=False, default="")
    author_id: int | None = column(
        "author_id", "INTEGER", references=foreign_key("authors", "id"), default=None
    )
    published: date | None = column("published", "TEXT", default=None)


@dataclass
class Shelf:
    label: str = ""


@table("broken")
@dataclass
class Broken:
    id: str | None = column("id", "TEXT", primary_key=True, auto_increment=True, default=None)


@pytest.fixture
def store() -> Iterator[SqliteStore]:
    opened = SqliteStore().open()
    create_schema(opened, [Author, Book])
    yield opened
    opened.close()


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


def test_discovery_keeps_definition_order_and_skips_undesignated_classes() -> None:
    module = sys.modules[__name__]

    assert discover_entities(module) == [Author, Book, Broken]


def test_create_schema_is_idempotent(store: SqliteStore) -> None:
    statements = create_schema(store, [Author, Book])

    assert [statement.split(" (")[0] for statement in statements] == [
        "CREATE TABLE IF NOT EXISTS authors",
        "CREATE TABLE IF NOT EXISTS books",
    ]
    assert store.table_exists("authors")
    assert store.table_exists("books")


def test_seed_applies_only_to_empty_tables(store: SqliteStore) -> None:
    assert seed_if_empty(store, Author, [Author(name="Ada"), Author(name="Grace")]) == 2
    assert seed_if_empty(store, Author, [Author(name="Linus")]) == 0

    assert [author.name for author in query_all(store, Author)] == ["Ada", "Grace"]


def test_failed_seed_rolls_back_every_row(store: SqliteStore) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        seed_if_empty(store, Book, [Book(title="Dune"), Book(title=None)])

    assert count(store, Book) == 0


def test_seed_items_must_match_entity_type(store: SqliteStore) -> None:
    with pytest.raises(TypeError, match="seed item for Author"):
        seed_if_empty(store, Author, [Author(name="Ada"), Book(title="Dune")])  # type: ignore[list-item]

    assert count(store, Author) == 0


def test_load_seed_file_from_list(tmp_path: Path) -> None:
    seed_path = _write(tmp_path / "authors.yaml", "- name: Ada\n- name: Grace\n")

    assert load_seed_file(seed_path, Author) == [Author(name="Ada"), Author(name="Grace")]


def test_load_seed_file_from_table_keyed_mapping(tmp_path: Path) -> None:
    seed_path = _write(
        tmp_path / "fixtures.yaml",
        "authors:\n  - name: Frank\n"
        "books:\n  - title: Dune\n    author_id: 1\n    published: '1965-08-01'\n",
    )

    [book] = load_seed_file(seed_path, Book)

    assert book == Book(title="Dune", author_id=1, published=date(1965, 8, 1))


def test_empty_seed_file_yields_nothing(tmp_path: Path) -> None:
    assert load_seed_file(_write(tmp_path / "empty.yaml", ""), Author) == []


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("- name: Ada\n  age: 36\n", "unknown columns for authors: age"),
        ("- just a string\n", "must be a mapping"),
        ("- [unclosed\n", "invalid YAML"),
        ("people:\n  - name: Ada\n", "must be a list of rows or contain a 'authors' list"),
        ("- id: not-a-number\n", "cannot coerce"),
    ],
)
def test_malformed_seed_files_are_rejected(tmp_path: Path, text: str, message: str) -> None:
    seed_path = _write(tmp_path / "authors.yaml", text)

    with pytest.raises(SeedFileError, match=message) as excinfo:
        load_seed_file(seed_path, Author)

    assert "authors.yaml" in str(excinfo.value)


def test_missing_seed_file_is_reported(tmp_path: Path) -> None:
    with pytest.raises(SeedFileError, match="failed to read seed file"):
        load_seed_file(tmp_path / "absent.yaml", Author)


def test_open_store_creates_schema_from_config(tmp_path: Path) -> None:
    config = {
        "store": {
            "path": str(tmp_path / "state" / "library.sqlite3"),
            "foreign_keys": True,
            "busy_timeout_ms": 1_000,
            "busy_retry_limit": 2,
            "busy_retry_backoff_ms": 0,
            "journal_mode": "wal",
        }
    }

    opened = open_store(config, entity_types=[Author, Book])
    try:
        assert opened.table_exists("books")
        assert opened.execute_scalar("PRAGMA busy_timeout") == 1_000
    finally:
        opened.close()


def test_open_store_closes_connection_when_schema_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    closed: list[str] = []
    original_close = SqliteStore.close

    def recording_close(self: SqliteStore) -> None:
        closed.append(str(self.path))
        original_close(self)

    monkeypatch.setattr(SqliteStore, "close", recording_close)

    with pytest.raises(InvalidAutoIncrementSpec):
        open_store({"store": {"path": ":memory:"}}, entity_types=[Author, Broken])

    assert closed == [":memory:"]


def test_open_store_requires_a_store_mapping() -> None:
    with pytest.raises(ValueError, match="must be a mapping"):
        open_store({"store": "memory"})
