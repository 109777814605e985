"""Descriptor derivation from annotated dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import pytest

from reflective_sql import (
    InvalidEntityDefinition,
    MissingTableMetadata,
    MultiplePrimaryKeysDefined,
    NoPrimaryKeyDefined,
    column,
    describe_entity,
    foreign_key,
    table,
)
from reflective_sql.metadata.annotations import ForeignKeyReference
from reflective_sql.metadata.descriptors import split_optional

from . import Counter, Event, Plain, Setting, Status, Tag, User


def test_columns_follow_declaration_order_and_skip_unmarked_fields() -> None:
    descriptor = describe_entity(User)

    assert descriptor.table_name == "users"
    assert descriptor.storage_names == ("id", "email", "nickname", "status", "team_id")
    assert "scratch" not in {column.field_name for column in descriptor.columns}
    assert descriptor.unmapped_required == ()


def test_value_types_and_native_nullability_come_from_annotations() -> None:
    columns = {column.field_name: column for column in describe_entity(User).columns}

    assert (columns["id"].value_type, columns["id"].native_nullable) == (int, True)
    assert (columns["email"].value_type, columns["email"].native_nullable) == (str, False)
    assert columns["status"].value_type is Status
    assert columns["status"].has_default is True
    assert columns["team_id"].foreign_key == ForeignKeyReference("teams", "id")


def test_generated_key_and_insertable_columns() -> None:
    descriptor = describe_entity(User)

    assert descriptor.generated_key is not None
    assert descriptor.generated_key.field_name == "id"
    assert [column.storage_name for column in descriptor.insertable_columns] == [
        "email",
        "nickname",
        "status",
        "team_id",
    ]
    assert describe_entity(Tag).generated_key is None
    assert describe_entity(Counter).insertable_columns == ()


def test_descriptor_is_cached_and_accepts_instances() -> None:
    assert describe_entity(User()) is describe_entity(User)


def test_frozen_dataclass_is_not_writable() -> None:
    descriptor = describe_entity(Event)
    key = descriptor.require_primary_key()

    assert descriptor.frozen is True
    assert descriptor.is_writable(key) is False
    assert describe_entity(User).is_writable(key) is True


def test_missing_table_designation_is_rejected() -> None:
    with pytest.raises(MissingTableMetadata) as excinfo:
        describe_entity(Plain)

    assert excinfo.value.entity_type is Plain
    assert "Plain" in str(excinfo.value)


def test_require_primary_key_without_key_column() -> None:
    with pytest.raises(NoPrimaryKeyDefined):
        describe_entity(Tag).require_primary_key()


def test_table_designation_requires_a_dataclass() -> None:
    @table("loose")
    class Loose:
        pass

    with pytest.raises(InvalidEntityDefinition, match="must be a dataclass"):
        describe_entity(Loose)


def test_multiple_primary_keys_are_rejected() -> None:
    @table("pairs")
    @dataclass
    class Pair:
        left: int = column("left_id", "INTEGER", primary_key=True, default=0)
        right: int = column("right_id", "INTEGER", primary_key=True, default=0)

    with pytest.raises(MultiplePrimaryKeysDefined) as excinfo:
        describe_entity(Pair)

    assert excinfo.value.field_names == ("left", "right")


def test_duplicate_storage_names_are_rejected() -> None:
    @table("dupes")
    @dataclass
    class Dupes:
        first: str = column("label", "TEXT", default="")
        second: str = column("label", "TEXT", default="")

    with pytest.raises(InvalidEntityDefinition, match="more than once"):
        describe_entity(Dupes)


@pytest.mark.parametrize("name", ["bad name", "1st", "drop;table", ""])
def test_column_names_must_be_identifiers(name: str) -> None:
    with pytest.raises(InvalidEntityDefinition):
        column(name, "TEXT")


@pytest.mark.parametrize("storage_type", ["TEXT; DROP TABLE users", "", "VARCHAR(", "(10)"])
def test_storage_types_must_be_type_names(storage_type: str) -> None:
    with pytest.raises(InvalidEntityDefinition):
        column("label", storage_type)


def test_storage_type_accepts_size_suffixes() -> None:
    @table("sized")
    @dataclass
    class Sized:
        code: str = column("code", "VARCHAR(32)", default="")
        amount: str = column("amount", "NUMERIC(10, 2)", default="0")

    types = [column.storage_type for column in describe_entity(Sized).columns]
    assert types == ["VARCHAR(32)", "NUMERIC(10, 2)"]


def test_table_and_foreign_key_names_must_be_identifiers() -> None:
    with pytest.raises(InvalidEntityDefinition):
        table("users; --")
    with pytest.raises(InvalidEntityDefinition):
        foreign_key("teams", "id)")


def test_inherited_designation_and_base_columns_come_first() -> None:
    @table("documents")
    @dataclass
    class Document:
        id: int | None = column("id", "INTEGER", primary_key=True, default=None)
        title: str = column("title", "TEXT", default="")

    @dataclass
    class Report(Document):
        pages: int = column("pages", "INTEGER", default=0)

    descriptor = describe_entity(Report)

    assert descriptor.table_name == "documents"
    assert descriptor.storage_names == ("id", "title", "pages")


def test_required_fields_without_metadata_are_recorded() -> None:
    @table("partials")
    @dataclass
    class Partial:
        required: str
        id: int | None = column("id", "INTEGER", primary_key=True, default=None)

    assert describe_entity(Partial).unmapped_required == ("required",)


def test_init_false_columns_are_tracked() -> None:
    columns = {column.field_name: column for column in describe_entity(Setting).columns}

    assert columns["revision"].init is False
    assert columns["name"].is_primary_key is True
    assert columns["name"].has_default is False


@pytest.mark.parametrize(
    ("annotation", "expected"),
    [
        (int, (int, False)),
        (int | None, (int, True)),
        (Optional[str], (str, True)),  # noqa: UP007
        (Any, (Any, True)),
        (None, (Any, True)),
        (int | str, (int | str, False)),
    ],
)
def test_split_optional(annotation: object, expected: tuple[object, bool]) -> None:
    assert split_optional(annotation) == expected
