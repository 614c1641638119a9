# ruff: noqa: PLR6301
"""Logging helpers for sqlfacade.

Loggers live under the ``sqlfacade`` namespace and never get handlers on their own.
Records about statements carry their SQL text, parameters and errors as structured
fields (see :func:`log_fields`); :class:`StructuredFormatter` emits them as JSON once an
application opts in through :func:`configure_logging`.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from sqlfacade._serialization import encode_json

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import LogRecord
    from typing import TextIO

__all__ = (
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "get_correlation_id",
    "get_logger",
    "log_fields",
    "set_correlation_id",
)

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to set, or None to clear
    """
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def log_fields(
    sql: str | None = None,
    params: Sequence[Any] | None = None,
    error: BaseException | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build the ``extra`` mapping for a statement-related log call.

    Example::

        logger.warning("Failed to execute: %s because: %s", sql, exc, extra=log_fields(sql, error=exc))

    Returns:
        ``{"extra_fields": {...}}`` holding only the values that were given.
    """
    extra_fields: dict[str, Any] = dict(fields)
    if sql is not None:
        extra_fields["sql"] = sql
    if params is not None:
        extra_fields["parameters"] = list(params)
    if error is not None:
        extra_fields["error"] = str(error)
        extra_fields["error_type"] = type(error).__name__
    return {"extra_fields": extra_fields}


class StructuredFormatter(logging.Formatter):
    """JSON formatter including the correlation ID and any :func:`log_fields` values."""

    def format(self, record: LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if correlation_id := getattr(record, "correlation_id", None) or get_correlation_id():
            log_entry["correlation_id"] = correlation_id

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)  # pyright: ignore

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return encode_json(log_entry)


class CorrelationIDFilter(logging.Filter):
    """Filter that adds correlation ID to log records."""

    def filter(self, record: LogRecord) -> bool:
        if correlation_id := get_correlation_id():
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger instance under the ``sqlfacade`` namespace.

    Args:
        name: Logger name. If not provided, returns the root sqlfacade logger.

    Returns:
        Configured logger instance
    """
    if name is None:
        return logging.getLogger("sqlfacade")

    if not name.startswith("sqlfacade"):
        name = f"sqlfacade.{name}"

    logger = logging.getLogger(name)

    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())

    return logger


class _FacadeHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Marks the handler installed by :func:`configure_logging`."""


def configure_logging(
    level: str = "INFO", structured: bool = True, stream: TextIO | None = None
) -> logging.Handler:
    """Send sqlfacade records to ``stream`` (stdout by default).

    Calling it again replaces the handler installed by the previous call; handlers
    added by the application are left alone.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: JSON lines through :class:`StructuredFormatter`, plain text otherwise.
        stream: Output stream.

    Returns:
        The installed handler.
    """
    root_logger = get_logger()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in [h for h in root_logger.handlers if isinstance(h, _FacadeHandler)]:
        root_logger.removeHandler(handler)

    handler = _FacadeHandler(stream or sys.stdout)
    formatter: logging.Formatter
    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    return handler
