"""CREATE TABLE generation from entity descriptors."""

from __future__ import annotations

from reflective_sql.constants import AUTO_INCREMENT_STORAGE_TYPE
from reflective_sql.errors import InvalidAutoIncrementSpec
from reflective_sql.metadata.descriptors import ColumnDescriptor, EntityDescriptor


def validate_auto_increment(descriptor: EntityDescriptor) -> None:
    """Raise ``InvalidAutoIncrementSpec`` for the first column violating the rowid rule."""

    for column in descriptor.columns:
        if not column.is_auto_increment:
            continue
        if (
            not column.is_primary_key
            or column.storage_type.upper() != AUTO_INCREMENT_STORAGE_TYPE
        ):
            raise InvalidAutoIncrementSpec(descriptor.entity_type, column.field_name)


def render_column_definition(column: ColumnDescriptor) -> str:
    parts = [column.storage_name, column.storage_type]
    if not column.is_nullable:
        parts.append("NOT NULL")
    if column.is_primary_key:
        parts.append("PRIMARY KEY")
    if column.is_auto_increment:
        parts.append("AUTOINCREMENT")
    return " ".join(parts)


def build_create_table(descriptor: EntityDescriptor) -> str:
    """Render ``CREATE TABLE IF NOT EXISTS`` for ``descriptor``.

    Foreign key clauses follow every column definition, in column order. The output is a
    pure function of the descriptor.
    """

    validate_auto_increment(descriptor)
    definitions = [render_column_definition(column) for column in descriptor.columns]
    for column in descriptor.columns:
        reference = column.foreign_key
        if reference is None:
            continue
        definitions.append(
            f"FOREIGN KEY({column.storage_name}) "
            f"REFERENCES {reference.referenced_table}({reference.referenced_column})"
        )
    return f"CREATE TABLE IF NOT EXISTS {descriptor.table_name} ({', '.join(definitions)});"


__all__ = [
    "build_create_table",
    "render_column_definition",
    "validate_auto_increment",
]
