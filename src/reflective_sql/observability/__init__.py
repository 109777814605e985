"""Logging configuration for reflective-sql components."""

from reflective_sql.observability.logging import (
    DEFAULT_LOGGER_NAME,
    JsonLineFormatter,
    LoggingHandle,
    bound_context,
    configure_from_config,
    configure_logging,
    get_active_logging_handle,
    get_logger,
    shutdown_logging,
)

__all__ = [
    "DEFAULT_LOGGER_NAME",
    "JsonLineFormatter",
    "LoggingHandle",
    "bound_context",
    "configure_from_config",
    "configure_logging",
    "get_active_logging_handle",
    "get_logger",
    "shutdown_logging",
]
