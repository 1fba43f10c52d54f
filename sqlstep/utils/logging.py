# ruff: noqa: PLR6301
"""Logging for sqlstep.

Every event is emitted under the ``sqlstep`` logger namespace with its fields
attached as ``extra_fields``. Records emitted while a connection's guard is
held carry that connection's label, so interleaved output from several
databases can be told apart.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from sqlstep._serialization import encode_json

if TYPE_CHECKING:
    from collections.abc import Generator
    from logging import LogRecord
    from typing import TextIO

__all__ = (
    "DatabaseLabelFilter",
    "StructuredFormatter",
    "bind_database_label",
    "current_database_label",
    "get_logger",
    "install_structured_handler",
    "log_with_context",
)

ROOT_LOGGER_NAME = "sqlstep"

_database_label: ContextVar[str | None] = ContextVar("sqlstep_database_label", default=None)


def current_database_label() -> str | None:
    """Label of the connection whose guard the current context holds, if any."""
    return _database_label.get()


@contextmanager
def bind_database_label(label: str) -> Generator[None, None, None]:
    """Tag records logged inside the block with ``label``."""
    token = _database_label.set(label)
    try:
        yield
    finally:
        _database_label.reset(token)


class DatabaseLabelFilter(logging.Filter):
    """Copies the bound connection label onto each record."""

    def filter(self, record: LogRecord) -> bool:
        if label := current_database_label():
            record.database_label = label  # type: ignore[attr-defined]
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per event, encoded with msgspec."""

    def format(self, record: LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        label = getattr(record, "database_label", None)
        if label:
            entry["database_label"] = label
        if hasattr(record, "extra_fields"):
            entry.update(record.extra_fields)  # pyright: ignore
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return encode_json(entry)  # type: ignore[return-value]


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger under the ``sqlstep`` namespace.

    Args:
        name: Dotted suffix such as ``core.guard``. Omit for the root sqlstep logger.

    Returns:
        Logger with the connection label filter attached
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    if not name.startswith(ROOT_LOGGER_NAME):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)

    if not any(isinstance(f, DatabaseLabelFilter) for f in logger.filters):
        logger.addFilter(DatabaseLabelFilter())

    return logger


def install_structured_handler(level: int = logging.DEBUG, stream: TextIO | None = None) -> logging.Handler:
    """Send sqlstep events to ``stream`` as JSON lines.

    Installing twice reuses the existing handler and only updates the level.

    Args:
        level: Minimum level emitted by the ``sqlstep`` logger
        stream: Target stream, ``sys.stderr`` by default

    Returns:
        The handler attached to the ``sqlstep`` logger
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        if isinstance(handler.formatter, StructuredFormatter):
            return handler

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(DatabaseLabelFilter())
    root_logger.addHandler(handler)
    return handler


def log_with_context(logger: logging.Logger, level: int, message: str, **extra_fields: Any) -> None:
    """Log an event with structured fields.

    Args:
        logger: The logger to use
        level: Log level
        message: Dotted event name, e.g. ``statement.prepare``
        **extra_fields: Fields rendered alongside the event
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message, extra={"extra_fields": extra_fields})
