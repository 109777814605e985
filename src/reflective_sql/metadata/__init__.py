"""
reflective-sql — metadata model.

File: src/reflective_sql/metadata/__init__.py
Last updated: 2026-10-16

Purpose
- Declarative table/column/foreign-key markers for dataclasses.
- Derivation of ``EntityDescriptor`` values from annotated types.

Functional requirements
- Types without a table designation fail with ``MissingTableMetadata``.
- Column discovery order is declaration order, base classes first.
- Fields without column metadata are invisible to the mapper.

Non-functional requirements
- Descriptor derivation is pure; the cache is safe for concurrent readers.
"""

from reflective_sql.metadata.annotations import (
    ColumnSpec,
    ForeignKeyReference,
    TableSpec,
    column,
    foreign_key,
    table,
)
from reflective_sql.metadata.descriptors import (
    ColumnDescriptor,
    EntityDescriptor,
    clear_descriptor_cache,
    describe_entity,
)

__all__ = [
    "ColumnDescriptor",
    "ColumnSpec",
    "EntityDescriptor",
    "ForeignKeyReference",
    "TableSpec",
    "clear_descriptor_cache",
    "column",
    "describe_entity",
    "foreign_key",
    "table",
]
