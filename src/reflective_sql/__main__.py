"""Module entrypoint for ``python -m reflective_sql``."""

from __future__ import annotations

from reflective_sql.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
