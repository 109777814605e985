"""CREATE TABLE generation and the auto-increment rule."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from hypothesis import given
from hypothesis import strategies as st

from reflective_sql import (
    InvalidAutoIncrementSpec,
    MissingTableMetadata,
    column,
    generate_create_table,
    table,
)
from reflective_sql.metadata.descriptors import ColumnDescriptor, EntityDescriptor
from reflective_sql.sql.schema import build_create_table

from . import Plain, Setting, Tag, User


def test_users_table_definition() -> None:
    assert generate_create_table(User) == (
        "CREATE TABLE IF NOT EXISTS users ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "email TEXT NOT NULL, "
        "nickname TEXT, "
        "status INTEGER NOT NULL, "
        "team_id INTEGER, "
        "FOREIGN KEY(team_id) REFERENCES teams(id));"
    )


def test_definition_without_foreign_keys_or_auto_increment() -> None:
    assert generate_create_table(Tag) == (
        "CREATE TABLE IF NOT EXISTS tags (label TEXT NOT NULL, flavor TEXT);"
    )
    assert generate_create_table(Setting) == (
        "CREATE TABLE IF NOT EXISTS settings "
        "(name TEXT PRIMARY KEY, value TEXT, revision INTEGER NOT NULL);"
    )


def test_repeated_generation_is_byte_identical() -> None:
    assert generate_create_table(User) == generate_create_table(User)


def test_not_null_precedes_primary_key() -> None:
    @table("codes")
    @dataclass
    class Code:
        code: str = column("code", "TEXT", nullable=False, primary_key=True, default="")

    assert generate_create_table(Code) == (
        "CREATE TABLE IF NOT EXISTS codes (code TEXT NOT NULL PRIMARY KEY);"
    )


def test_foreign_keys_follow_columns_in_column_order() -> None:
    from reflective_sql import foreign_key

    @table("links")
    @dataclass
    class Link:
        source: int = column("source_id", "INTEGER", references=foreign_key("nodes", "id"), default=0)
        note: str = column("note", "TEXT", default="")
        target: int = column("target_id", "INTEGER", references=foreign_key("nodes", "id"), default=0)

    assert generate_create_table(Link) == (
        "CREATE TABLE IF NOT EXISTS links (source_id INTEGER, note TEXT, target_id INTEGER, "
        "FOREIGN KEY(source_id) REFERENCES nodes(id), "
        "FOREIGN KEY(target_id) REFERENCES nodes(id));"
    )


def test_missing_table_designation() -> None:
    with pytest.raises(MissingTableMetadata):
        generate_create_table(Plain)


def test_lowercase_integer_is_accepted_for_auto_increment() -> None:
    @table("lowercase")
    @dataclass
    class Lowercase:
        id: int | None = column("id", "integer", primary_key=True, auto_increment=True, default=None)

    assert generate_create_table(Lowercase) == (
        "CREATE TABLE IF NOT EXISTS lowercase (id integer PRIMARY KEY AUTOINCREMENT);"
    )


class _Marker:
    pass


@given(
    primary_key=st.booleans(),
    storage_type=st.sampled_from(["INTEGER", "integer", "Integer", "INT", "BIGINT", "TEXT", "REAL"]),
)
def test_auto_increment_requires_integer_primary_key(primary_key: bool, storage_type: str) -> None:
    descriptor = EntityDescriptor(
        entity_type=_Marker,
        table_name="grid",
        columns=(
            ColumnDescriptor(
                field_name="key",
                storage_name="key_id",
                storage_type=storage_type,
                is_primary_key=primary_key,
                is_auto_increment=True,
            ),
        ),
    )

    if primary_key and storage_type.upper() == "INTEGER":
        assert build_create_table(descriptor).endswith("PRIMARY KEY AUTOINCREMENT);")
        return

    with pytest.raises(InvalidAutoIncrementSpec) as excinfo:
        build_create_table(descriptor)
    assert excinfo.value.field_name == "key"
    assert "AUTOINCREMENT requires INTEGER PRIMARY KEY" in str(excinfo.value)
