"""Logging helpers for procspec.

Every procspec logger lives under the ``procspec`` namespace. Each routine
invocation runs inside a :func:`correlation_scope`, so every record logged
while it runs (by the invoker, the binder, the serializer or an adapter)
carries the same ``correlation_id``. :class:`StructuredFormatter` renders
records as JSON lines that include it.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Final

from procspec._serialization import encode_json

if TYPE_CHECKING:
    from collections.abc import Generator, Iterable
    from contextvars import Token
    from logging import LogRecord

__all__ = (
    "ROOT_LOGGER_NAME",
    "CorrelationIDFilter",
    "StructuredFormatter",
    "configure_logging",
    "correlation_id_var",
    "correlation_scope",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "set_correlation_id",
)

ROOT_LOGGER_NAME: Final = "procspec"
SIMPLE_FORMAT: Final = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

correlation_id_var: ContextVar[str | None] = ContextVar("procspec_correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    """Set the correlation ID of the current context.

    Returns:
        A token that restores the previous value via ``correlation_id_var.reset``.
    """
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str | None) -> Generator[str | None, None, None]:
    """Tag every record logged inside the block with ``correlation_id``.

    The previous value is restored on exit, also when the block raises.

    Yields:
        The active correlation ID.
    """
    token = set_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)


class CorrelationIDFilter(logging.Filter):
    """Stamp the active correlation ID on records as ``record.correlation_id``."""

    def filter(self, record: LogRecord) -> bool:
        if correlation_id := get_correlation_id():
            record.correlation_id = correlation_id  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        if correlation_id:
            entry["correlation_id"] = correlation_id
        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            entry.update(extra_fields)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``procspec`` namespace.

    Args:
        name: Dotted name relative to ``procspec``; the namespace logger itself when omitted.
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIDFilter) for f in logger.filters):
        logger.addFilter(CorrelationIDFilter())
    return logger


def configure_logging(
    level: str = "INFO",
    format_style: str = "structured",
    log_to_file: str | None = None,
    extra_handlers: Iterable[logging.Handler] | None = None,
) -> None:
    """Route procspec records to standard error, replacing earlier procspec handlers.

    Args:
        level: Level name for the ``procspec`` namespace.
        format_style: ``"structured"`` for JSON lines, ``"simple"`` for plain text.
        log_to_file: Also write JSON lines to this file.
        extra_handlers: Additional handlers attached as given.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        StructuredFormatter() if format_style == "structured" else logging.Formatter(SIMPLE_FORMAT)
    )
    handlers: list[logging.Handler] = [console_handler]
    if log_to_file:
        file_handler = logging.FileHandler(log_to_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)
    handlers.extend(extra_handlers or ())
    for handler in handlers:
        root_logger.addHandler(handler)

    # records stay out of the host application's root handlers
    root_logger.propagate = False
    log_with_context(
        root_logger,
        logging.DEBUG,
        "procspec logging configured",
        level=level,
        format_style=format_style,
        handlers_count=len(handlers),
    )


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log ``message`` with ``extra_fields`` attached for :class:`StructuredFormatter`."""
    if logger.isEnabledFor(level):
        logger.log(level, message, extra={"extra_fields": extra_fields})
