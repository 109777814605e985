"""SQL text generation: schema definitions and parameterized CRUD statements."""

from reflective_sql.sql.schema import build_create_table
from reflective_sql.sql.statements import (
    LAST_INSERT_ID,
    Statement,
    build_count,
    build_delete,
    build_delete_by_id,
    build_insert,
    build_select_all,
    build_select_by_id,
    build_select_where,
    build_update,
)

__all__ = [
    "LAST_INSERT_ID",
    "Statement",
    "build_count",
    "build_create_table",
    "build_delete",
    "build_delete_by_id",
    "build_insert",
    "build_select_all",
    "build_select_by_id",
    "build_select_where",
    "build_update",
]
