"""
reflective-sql package root.

File: src/reflective_sql/__init__.py
Last updated: 2026-10-16

Purpose
- Reflective object-relational mapping for annotated dataclasses: derive table
  definitions and parameterized CRUD statements from declared metadata, execute them
  through an injected store, and hydrate typed instances from result rows.

Functional requirements
- Expose the metadata markers, the mapping operations, the repository facade and the
  error taxonomy at the top level.
"""

import logging

from reflective_sql.errors import (
    InvalidAutoIncrementSpec,
    InvalidEntityDefinition,
    MappingError,
    MissingKeyValue,
    MissingTableMetadata,
    MultiplePrimaryKeysDefined,
    NoPrimaryKeyDefined,
    TypeCoercionError,
)
from reflective_sql.mapping import (
    EntityRepository,
    delete,
    delete_by_id,
    generate_create_table,
    insert,
    query_all,
    query_by_id,
    query_where,
    update,
)
from reflective_sql.metadata import (
    ColumnDescriptor,
    EntityDescriptor,
    ForeignKeyReference,
    column,
    describe_entity,
    foreign_key,
    table,
)
from reflective_sql.store import ExecutableStore, SqliteStore

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ColumnDescriptor",
    "EntityDescriptor",
    "EntityRepository",
    "ExecutableStore",
    "ForeignKeyReference",
    "InvalidAutoIncrementSpec",
    "InvalidEntityDefinition",
    "MappingError",
    "MissingKeyValue",
    "MissingTableMetadata",
    "MultiplePrimaryKeysDefined",
    "NoPrimaryKeyDefined",
    "SqliteStore",
    "TypeCoercionError",
    "__version__",
    "column",
    "delete",
    "delete_by_id",
    "describe_entity",
    "foreign_key",
    "generate_create_table",
    "insert",
    "query_all",
    "query_by_id",
    "query_where",
    "table",
    "update",
]
