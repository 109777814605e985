"""
reflective-sql — configuration schema and validation.

File: src/reflective_sql/config/schema.py
Last updated: 2026-10-16

Purpose
- Describe the ``[store]`` and ``[observability]`` sections, their defaults and the
  rules every value must satisfy.

What should be included in this file
- One field table derived from the section TypedDicts; the loader builds its
  environment bindings and CLI override keys from the same table.
- A two-level merge for layering partial payloads over the defaults.

Functional requirements
- Validate config payloads and return structured issues (dotted path + message).
- Reject unknown sections and unknown keys; require every declared key.
- Normalize choice values to their canonical case and strip text values.

Non-functional requirements
- Issue order is deterministic: unknown keys first, then declared fields in
  declaration order.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, Literal, TypedDict, get_args, get_origin, get_type_hints

JournalMode = Literal["wal", "delete", "truncate", "memory"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]

FieldKind = Literal["path", "bool", "int", "choice"]


class StoreConfig(TypedDict):
    path: str
    foreign_keys: bool
    busy_timeout_ms: int
    busy_retry_limit: int
    busy_retry_backoff_ms: int
    journal_mode: JournalMode


class ObservabilityConfig(TypedDict):
    log_level: LogLevel
    log_dir: str
    log_to_stdout: bool


class ReflectiveSqlConfig(TypedDict):
    store: StoreConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ReflectiveSqlConfig] = {
    "store": {
        "path": "state/reflective.sqlite3",
        "foreign_keys": True,
        "busy_timeout_ms": 5_000,
        "busy_retry_limit": 4,
        "busy_retry_backoff_ms": 25,
        "journal_mode": "wal",
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs",
        "log_to_stdout": False,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigField:
    """One declared key of a config section.

    Text fields are filesystem paths; integer fields are counts or durations and
    must be non-negative.
    """

    section: str
    key: str
    kind: FieldKind
    choices: tuple[str, ...] = ()

    @property
    def dotted(self) -> str:
        return f"{self.section}.{self.key}"


def _fields_of(section: str, shape: type) -> tuple[ConfigField, ...]:
    fields: list[ConfigField] = []
    for key, hint in get_type_hints(shape).items():
        if get_origin(hint) is Literal:
            fields.append(ConfigField(section, key, "choice", tuple(get_args(hint))))
        elif hint is bool:
            fields.append(ConfigField(section, key, "bool"))
        elif hint is int:
            fields.append(ConfigField(section, key, "int"))
        else:
            fields.append(ConfigField(section, key, "path"))
    return tuple(fields)


SECTIONS: Final[dict[str, type]] = {
    "store": StoreConfig,
    "observability": ObservabilityConfig,
}

CONFIG_FIELDS: Final[tuple[ConfigField, ...]] = tuple(
    field for section, shape in SECTIONS.items() for field in _fields_of(section, shape)
)


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered or '- <root>: unknown failure'}")


def default_config() -> ReflectiveSqlConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Layer ``overlay`` over ``base``; nested sections merge key by key."""

    merged = {key: _copied(value) for key, value in base.items()}
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = _copied(value)
    return merged


def validate_config(config: object) -> ConfigValidationResult:
    """Check every section against ``CONFIG_FIELDS`` and normalize accepted values."""

    issues: list[ConfigValidationIssue] = []
    if not isinstance(config, Mapping):
        issues.append(
            ConfigValidationIssue("<root>", f"expected object, got {type(config).__name__}")
        )
        return ConfigValidationResult(config=None, issues=tuple(issues))

    for name in sorted(str(key) for key in config if key not in SECTIONS):
        issues.append(ConfigValidationIssue(name, "unknown field"))

    out: dict[str, Any] = {}
    for section in SECTIONS:
        if section not in config:
            issues.append(ConfigValidationIssue(section, "missing required field"))
            continue
        payload = config[section]
        if not isinstance(payload, Mapping):
            issues.append(
                ConfigValidationIssue(section, f"expected object, got {type(payload).__name__}")
            )
            continue
        out[section] = _validate_section(section, payload, issues)

    if issues:
        return ConfigValidationResult(config=None, issues=tuple(issues))
    return ConfigValidationResult(config=out, issues=())


def assert_valid_config(config: object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_section(
    section: str, payload: Mapping[str, object], issues: list[ConfigValidationIssue]
) -> dict[str, Any]:
    declared = [field for field in CONFIG_FIELDS if field.section == section]
    known = {field.key for field in declared}
    for key in sorted(str(key) for key in payload if key not in known):
        issues.append(ConfigValidationIssue(f"{section}.{key}", "unknown field"))

    out: dict[str, Any] = {}
    for field in declared:
        if field.key not in payload:
            issues.append(ConfigValidationIssue(field.dotted, "missing required field"))
            continue
        try:
            out[field.key] = _check_value(field, payload[field.key])
        except ValueError as exc:
            issues.append(ConfigValidationIssue(field.dotted, str(exc)))
    return out


def _check_value(field: ConfigField, value: object) -> object:
    if field.kind == "bool":
        if not isinstance(value, bool):
            raise ValueError(f"expected boolean, got {type(value).__name__}")
        return value
    if field.kind == "int":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"expected integer, got {type(value).__name__}")
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    if not isinstance(value, str):
        raise ValueError(f"expected string, got {type(value).__name__}")
    text = value.strip()
    if not text:
        raise ValueError("must not be empty")
    if field.kind == "path":
        if "\x00" in text:
            raise ValueError("must not contain NUL bytes")
        return text

    canonical = text.upper() if all(choice.isupper() for choice in field.choices) else text.lower()
    if canonical not in field.choices:
        expected = ", ".join(sorted(field.choices))
        raise ValueError(f"invalid value {canonical!r}; expected one of: {expected}")
    return canonical


def _copied(value: Any) -> Any:
    if isinstance(value, Mapping):
        return merge_config({}, value)
    return copy.deepcopy(value)


__all__ = [
    "CONFIG_FIELDS",
    "DEFAULT_CONFIG",
    "SECTIONS",
    "ConfigField",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "ObservabilityConfig",
    "ReflectiveSqlConfig",
    "StoreConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
