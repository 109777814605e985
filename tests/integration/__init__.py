"""
reflective-sql — integration test package

File: tests/integration/__init__.py
Last updated: 2026-10-16

Purpose
- Entity types shared by the SQLite round-trip and CLI suites.

Functional requirements
- Must not open databases at import time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum, IntEnum

from reflective_sql import column, foreign_key, table


class Priority(IntEnum):
    LOW = 0
    HIGH = 1


class Shade(Enum):
    LIGHT = 1
    DARK = 2


@table("departments")
@dataclass
class Department:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    name: str = column("name", "TEXT", nullable=False, default="")


@table("employees")
@dataclass
class Employee:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    full_name: str = column("full_name", "TEXT", nullable=False, default="")
    email: str | None = column("email", "TEXT", default=None)
    hired_on: date | None = column("hired_on", "TEXT", default=None)
    department_id: int | None = column(
        "department_id", "INTEGER", references=foreign_key("departments", "id"), default=None
    )
    priority: Priority = column("priority", "INTEGER", nullable=False, default=Priority.LOW)
    notes: list[str] = field(default_factory=list, compare=False)


@table("badges")
@dataclass(frozen=True)
class Badge:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    code: str = column("code", "TEXT", nullable=False, default="")


@table("labels")
@dataclass
class Label:
    text: str = column("text", "TEXT", nullable=False, default="")
    color: str | None = column("color", "TEXT", default=None)


@table("swatches")
@dataclass
class Swatch:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    shade: Shade = column("shade", "INTEGER", nullable=False, default=Shade.LIGHT)
