"""Structured logging setup: structlog loggers rendered as JSON lines through stdlib logging."""

from __future__ import annotations

import json
import logging
import math
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

import structlog

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

DEFAULT_LOGGER_NAME: Final[str] = "reflective_sql"
DEFAULT_LOG_FILENAME: Final[str] = "reflective_sql.jsonl"

_RESERVED_EVENT_KEYS: Final[frozenset[str]] = frozenset({"timestamp", "level", "logger", "event"})

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)

_ACTIVE_HANDLE_LOCK = threading.Lock()
_ACTIVE_HANDLE: LoggingHandle | None = None


class JsonLineFormatter(logging.Formatter):
    """Formatter that emits one canonical JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }

        for key, value in sorted(_extract_extra_fields(record).items()):
            if key not in _RESERVED_EVENT_KEYS:
                event[key] = value

        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            event["stack"] = str(record.stack_info)

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class LoggingHandle:
    """Runtime handle for an active logging setup."""

    logger: logging.Logger
    handlers: tuple[logging.Handler, ...]
    log_path: Path | None

    def flush(self) -> None:
        for handler in self.handlers:
            handler.flush()

    def close(self) -> None:
        for handler in self.handlers:
            self.logger.removeHandler(handler)
            handler.flush()
            handler.close()


def configure_logging(
    level: int | str = "INFO",
    log_dir: Path | str | None = None,
    log_to_stdout: bool = False,
    *,
    logger_name: str = DEFAULT_LOGGER_NAME,
    log_filename: str = DEFAULT_LOG_FILENAME,
) -> LoggingHandle:
    """Route structlog events for ``logger_name`` into JSON-lines sinks.

    With neither a ``log_dir`` nor stdout enabled, events are discarded through a
    ``NullHandler``. Calling this again replaces the previous setup.
    """

    _shutdown_previous_active_handle()
    parsed_level = _parse_log_level(level)
    formatter = JsonLineFormatter()

    handlers: list[logging.Handler] = []
    log_path: Path | None = None
    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        log_path = directory / log_filename
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if log_to_stdout:
        handlers.append(logging.StreamHandler())
    if not handlers:
        handlers.append(logging.NullHandler())

    logger = logging.getLogger(logger_name)
    logger.setLevel(parsed_level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    for handler in handlers:
        handler.setLevel(parsed_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handle = LoggingHandle(logger=logger, handlers=tuple(handlers), log_path=log_path)
    global _ACTIVE_HANDLE
    with _ACTIVE_HANDLE_LOCK:
        _ACTIVE_HANDLE = handle
    return handle


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to the stdlib logger ``name``.

    Before ``configure_logging`` runs, events land in the stdlib tree, where the
    package ``NullHandler`` discards them instead of printing to stdout.
    """

    return structlog.wrap_logger(logging.getLogger(name))


def configure_from_config(observability: Mapping[str, object]) -> LoggingHandle:
    """Configure logging from a validated ``[observability]`` section."""

    raw_level = observability.get("log_level", "INFO")
    raw_dir = observability.get("log_dir")
    return configure_logging(
        level=raw_level if isinstance(raw_level, (int, str)) else "INFO",
        log_dir=raw_dir if isinstance(raw_dir, (str, Path)) else None,
        log_to_stdout=bool(observability.get("log_to_stdout", False)),
    )


def shutdown_logging(handle: LoggingHandle | None = None) -> None:
    """Flush and close the sinks of ``handle`` (default: the active setup)."""

    global _ACTIVE_HANDLE
    with _ACTIVE_HANDLE_LOCK:
        resolved = handle if handle is not None else _ACTIVE_HANDLE
        if resolved is None:
            return
        if _ACTIVE_HANDLE is resolved:
            _ACTIVE_HANDLE = None
    resolved.close()


def get_active_logging_handle() -> LoggingHandle | None:
    with _ACTIVE_HANDLE_LOCK:
        return _ACTIVE_HANDLE


@contextmanager
def bound_context(**fields: object) -> Iterator[None]:
    """Temporarily bind correlation fields onto every log event in scope."""

    tokens = structlog.contextvars.bind_contextvars(**fields)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def _shutdown_previous_active_handle() -> None:
    existing = get_active_logging_handle()
    if existing is not None:
        shutdown_logging(existing)


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value

    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")

    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed

    raise ValueError(f"unsupported logging level {value!r}")


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS or key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _normalize_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            normalized = value.replace(tzinfo=UTC)
        else:
            normalized = value.astimezone(UTC)
        return normalized.isoformat(timespec="microseconds").replace("+00:00", "Z")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_normalize_json_value(item) for item in value]
    return repr(value)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "JSONValue",
    "JsonLineFormatter",
    "LoggingHandle",
    "bound_context",
    "configure_from_config",
    "configure_logging",
    "get_active_logging_handle",
    "get_logger",
    "shutdown_logging",
]
