"""Mapping engine operations and the typed repository facade."""

from reflective_sql.mapping.engine import (
    count,
    delete,
    delete_by_id,
    generate_create_table,
    hydrate,
    insert,
    query_all,
    query_by_id,
    query_where,
    update,
)
from reflective_sql.mapping.repository import EntityRepository

__all__ = [
    "EntityRepository",
    "count",
    "delete",
    "delete_by_id",
    "generate_create_table",
    "hydrate",
    "insert",
    "query_all",
    "query_by_id",
    "query_where",
    "update",
]
