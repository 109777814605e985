"""
reflective-sql config package public API.

File: src/reflective_sql/config/__init__.py
Last updated: 2026-10-16

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``reflective_sql.toml`` + ``REFLECTIVE_SQL_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from reflective_sql.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    env_name_for,
    load_config,
    resolve_paths,
)
from reflective_sql.config.schema import (
    CONFIG_FIELDS,
    DEFAULT_CONFIG,
    ConfigField,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    ReflectiveSqlConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "CONFIG_FIELDS",
    "ConfigField",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ReflectiveSqlConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "env_name_for",
    "load_config",
    "merge_config",
    "resolve_paths",
    "validate_config",
]
