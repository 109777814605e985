"""
reflective-sql — runtime config loader.

File: src/reflective_sql/config/loader.py
Last updated: 2026-10-16

Purpose
- Produce the effective ``[store]`` / ``[observability]`` config from four layers:
  defaults, a TOML file, ``REFLECTIVE_SQL_<SECTION>__<KEY>`` environment variables
  and ``section.key`` CLI overrides, later layers winning.

Functional requirements
- Environment variables and CLI override keys exist only for declared fields;
  environment text is parsed according to the field's kind.
- Path fields resolve against the config file's directory; the in-memory database
  marker is a path value that stays as written.
- A missing default file means defaults; a missing explicit file is an error.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from reflective_sql.config.schema import (
    CONFIG_FIELDS,
    ConfigField,
    assert_valid_config,
    default_config,
    merge_config,
)
from reflective_sql.constants import MEMORY_DATABASE

DEFAULT_CONFIG_FILE: Final[str] = "reflective_sql.toml"
ENV_PREFIX: Final[str] = "REFLECTIVE_SQL_"

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


class ConfigLoadError(ValueError):
    """Raised when a config layer cannot be read or parsed."""


def env_name_for(field: ConfigField) -> str:
    return f"{ENV_PREFIX}{field.section.upper()}__{field.key.upper()}"


def load_config(
    config_path: str | Path | None = None,
    *,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Load and validate the effective config."""

    source = (
        Path.cwd() / DEFAULT_CONFIG_FILE
        if config_path is None
        else Path(config_path).expanduser()
    ).resolve()

    layered: dict[str, Any] = merge_config(
        default_config(), _read_toml(source, required=config_path is not None)
    )
    layered = merge_config(layered, _env_layer(os.environ if environ is None else environ))
    layered = merge_config(layered, _cli_layer(cli_overrides or {}))

    return resolve_paths(assert_valid_config(layered), base_dir=source.parent)


def resolve_paths(config: Mapping[str, Any], *, base_dir: Path) -> dict[str, Any]:
    """Anchor relative path fields at ``base_dir``; ``:memory:`` is left alone."""

    resolved = merge_config({}, config)
    for field in CONFIG_FIELDS:
        section = resolved.get(field.section)
        if field.kind != "path" or not isinstance(section, dict):
            continue
        raw = section.get(field.key)
        if isinstance(raw, str) and raw != MEMORY_DATABASE:
            section[field.key] = _anchor(raw, base_dir)
    return resolved


def dump_effective_config(config: Mapping[str, object]) -> str:
    """Return a deterministic JSON dump of the effective config."""

    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _env_layer(environ: Mapping[str, str]) -> dict[str, dict[str, object]]:
    layer: dict[str, dict[str, object]] = {}
    for field in CONFIG_FIELDS:
        name = env_name_for(field)
        raw = environ.get(name)
        if raw is not None:
            layer.setdefault(field.section, {})[field.key] = _parse_env(field, name, raw.strip())
    return layer


def _parse_env(field: ConfigField, name: str, text: str) -> object:
    if field.kind == "int":
        try:
            return int(text)
        except ValueError as exc:
            raise ConfigLoadError(f"{name} -> {field.dotted} must be an integer") from exc
    if field.kind == "bool":
        lowered = text.lower()
        if lowered in _TRUTHY or lowered in _FALSY:
            return lowered in _TRUTHY
        raise ConfigLoadError(
            f"{name} -> {field.dotted} must be a boolean (true/false/1/0/yes/no/on/off)"
        )
    return text


def _cli_layer(overrides: Mapping[str, object]) -> dict[str, dict[str, object]]:
    by_dotted = {field.dotted: field for field in CONFIG_FIELDS}
    layer: dict[str, dict[str, object]] = {}
    for dotted, value in overrides.items():
        field = by_dotted.get(dotted)
        if field is None:
            raise ConfigLoadError(f"unknown config override {dotted!r}")
        layer.setdefault(field.section, {})[field.key] = value
    return layer


def _anchor(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ConfigLoadError",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "dump_effective_config",
    "env_name_for",
    "load_config",
    "resolve_paths",
]
