"""Command-line interface router for reflective-sql."""

from __future__ import annotations

import argparse
import importlib
import importlib.util
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType

from reflective_sql.config import load_config
from reflective_sql.mapping.engine import generate_create_table
from reflective_sql.metadata.descriptors import describe_entity
from reflective_sql.observability import bound_context, configure_from_config, shutdown_logging
from reflective_sql.provisioning import (
    discover_entities,
    load_seed_file,
    open_store,
    seed_if_empty,
)


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 2

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="reflective-sql",
        description=(
            "reflective-sql — schema and CRUD SQL derived from annotated dataclasses.\n\n"
            "Common workflows:\n"
            "  reflective-sql schema app.models          Print DDL for mapped entities\n"
            "  reflective-sql init app.models --db x.db  Create tables and seed them\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    schema_parser = subparsers.add_parser(
        "schema",
        help="Print CREATE TABLE statements for every entity in a module",
    )
    schema_parser.add_argument("module", help="Importable module name or path to a .py file")
    schema_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    schema_parser.set_defaults(handler=_cmd_schema)

    init_parser = subparsers.add_parser(
        "init",
        help="Open the configured store, create the schema and seed empty tables",
    )
    init_parser.add_argument("module", help="Importable module name or path to a .py file")
    init_parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to TOML config (default: ./reflective_sql.toml if present).",
    )
    init_parser.add_argument(
        "--db",
        default=None,
        help="Database path override (use :memory: for a throwaway database).",
    )
    init_parser.add_argument(
        "--seed",
        action="append",
        default=[],
        metavar="TABLE=FILE",
        help="Seed TABLE from a YAML file when it is empty (repeatable).",
    )
    init_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    init_parser.set_defaults(handler=_cmd_init)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_schema(args: argparse.Namespace) -> int:
    module = _import_entity_module(args.module)
    entity_types = discover_entities(module)
    statements = [
        {"table": describe_entity(entity_type).table_name, "sql": generate_create_table(entity_type)}
        for entity_type in entity_types
    ]

    if args.json:
        _emit_json({"command": "schema", "module": module.__name__, "tables": statements})
        return 0

    if not statements:
        print(f"-- no mapped entities in {module.__name__}", file=sys.stderr)
    for item in statements:
        print(item["sql"])
    return 0


def _cmd_init(args: argparse.Namespace) -> int:
    overrides: dict[str, object] = {}
    if args.db is not None:
        overrides["store.path"] = args.db
    config = load_config(args.config_path, cli_overrides=overrides)
    seeds = _parse_seed_args(args.seed)

    module = _import_entity_module(args.module)
    entity_types = discover_entities(module)
    by_table = {describe_entity(entity_type).table_name: entity_type for entity_type in entity_types}
    for table_name in seeds:
        if table_name not in by_table:
            raise CLIError(f"--seed names unknown table {table_name!r} in {module.__name__}")

    handle = configure_from_config(config["observability"])
    try:
        with bound_context(command="init", entity_module=module.__name__):
            store = open_store(config, entity_types=entity_types)
            try:
                seeded: dict[str, int] = {}
                for table_name, seed_path in seeds.items():
                    entity_type = by_table[table_name]
                    items = load_seed_file(seed_path, entity_type)
                    seeded[table_name] = seed_if_empty(store, entity_type, items)
            finally:
                store.close()
    finally:
        shutdown_logging(handle)

    payload: dict[str, object] = {
        "command": "init",
        "database": str(config["store"]["path"]),
        "tables": sorted(by_table),
        "seeded": seeded,
    }
    if args.json:
        _emit_json(payload)
        return 0

    print(f"database: {payload['database']}")
    print(f"tables:   {', '.join(sorted(by_table)) or '(none)'}")
    for table_name in sorted(seeded):
        print(f"seeded:   {table_name} ({seeded[table_name]} rows)")
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _import_entity_module(target: str) -> ModuleType:
    candidate = Path(target)
    if candidate.suffix == ".py":
        if not candidate.is_file():
            raise CLIError(f"module file not found: {candidate.as_posix()}")
        return _load_module_from_path(candidate)
    try:
        return importlib.import_module(target)
    except ModuleNotFoundError as exc:
        raise CLIError(f"cannot import module {target!r}: {exc}") from exc


def _load_module_from_path(path: Path) -> ModuleType:
    module_name = f"_reflective_sql_entities_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise CLIError(f"cannot load module from {path.as_posix()}")
    module = importlib.util.module_from_spec(spec)
    # Annotation resolution looks the module up by name.
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def _parse_seed_args(raw: Sequence[str]) -> dict[str, Path]:
    seeds: dict[str, Path] = {}
    for item in raw:
        table_name, separator, file_name = item.partition("=")
        if not separator or not table_name.strip() or not file_name.strip():
            raise CLIError(f"--seed expects TABLE=FILE, got {item!r}")
        seeds[table_name.strip()] = Path(file_name.strip())
    return seeds


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


__all__ = ["CLIError", "build_parser", "run_cli"]
