"""Shared entity types and a recording store for mapping tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum

from reflective_sql import column, foreign_key, table


class Status(IntEnum):
    ACTIVE = 0
    SUSPENDED = 1


class Flavor(Enum):
    SWEET = "sweet"
    SALTY = "salty"


@table("teams")
@dataclass
class Team:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    name: str = column("name", "TEXT", nullable=False, default="")


@table("users")
@dataclass
class User:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    email: str = column("email", "TEXT", nullable=False, default="")
    nickname: str | None = column("nickname", "TEXT", default=None)
    status: Status = column("status", "INTEGER", nullable=False, default=Status.ACTIVE)
    team_id: int | None = column(
        "team_id", "INTEGER", references=foreign_key("teams", "id"), default=None
    )
    scratch: str = field(default="", compare=False)


@table("tags")
@dataclass
class Tag:
    label: str = column("label", "TEXT", nullable=False, default="")
    flavor: Flavor | None = column("flavor", "TEXT", default=None)


@table("counters")
@dataclass
class Counter:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)


@table("events")
@dataclass(frozen=True)
class Event:
    id: int | None = column("id", "INTEGER", primary_key=True, auto_increment=True, default=None)
    kind: str = column("kind", "TEXT", nullable=False, default="")


@table("settings")
@dataclass
class Setting:
    name: str = column("name", "TEXT", primary_key=True)
    value: str | None = column("value", "TEXT", default=None)
    revision: int = column("revision", "INTEGER", nullable=False, default=0, init=False)


@dataclass
class Plain:
    id: int | None = column("id", "INTEGER", primary_key=True, default=None)


class RecordingStore:
    """In-memory ``ExecutableStore`` that records every call and replays canned results."""

    def __init__(
        self,
        *,
        rowcount: int = 1,
        scalar: object = None,
        rows: list[object] | None = None,
    ) -> None:
        self.rowcount = rowcount
        self.scalar = scalar
        self.rows = list(rows or [])
        self.calls: list[tuple[str, str, dict[str, object]]] = []

    def execute(self, sql: str, params: object = None) -> int:
        self.calls.append(("execute", sql, dict(params or {})))  # type: ignore[call-overload]
        return self.rowcount

    def execute_scalar(self, sql: str, params: object = None) -> object:
        self.calls.append(("scalar", sql, dict(params or {})))  # type: ignore[call-overload]
        return self.scalar

    def execute_query(self, sql: str, params: object = None) -> list[object]:
        self.calls.append(("query", sql, dict(params or {})))  # type: ignore[call-overload]
        return list(self.rows)
