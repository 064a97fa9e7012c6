"""Structured logging configuration for credit-engine.

Records carry the account and customer being worked on. Code sets them once
with :func:`log_context` and every record logged inside the block, including
records from customer lookup workers, is tagged with them.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

CONTEXT_FIELDS = ("account_id", "customer_id")

_log_context: ContextVar[dict[str, Any]] = ContextVar("credit_engine_log_context", default={})


@contextmanager
def log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """Tag records logged inside the block with ``fields``.

    Nested blocks add to the enclosing fields; ``None`` values are skipped.
    """
    current = {**_log_context.get(), **{k: v for k, v in fields.items() if v is not None}}
    token = _log_context.set(current)
    try:
        yield current
    finally:
        _log_context.reset(token)


def current_log_context() -> dict[str, Any]:
    """Fields set by the innermost active :func:`log_context`."""
    return dict(_log_context.get())


class ContextFilter(logging.Filter):
    """Copy the active log context onto each record.

    Every name in ``CONTEXT_FIELDS`` is set (``None`` when absent) so format
    strings can reference them. The fields also go into ``record.extra`` for
    :class:`JsonFormatter`.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        for name in CONTEXT_FIELDS:
            setattr(record, name, context.get(name))
        if context:
            extra = dict(getattr(record, "extra", {}))
            for key, value in context.items():
                extra.setdefault(key, value)
            record.extra = extra
        record.context = " ".join(f"{k}={v}" for k, v in context.items())
        return True


class StandardFormatter(logging.Formatter):
    """Pipe-separated text format with context fields appended when present."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", "")
        return f"{line} | {context}" if context else line


def setup_logging(
    level: str = "INFO",
    format_type: str = "standard",
) -> None:
    """Configure logging for credit-engine.

    Parameters
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    format_type : str
        Format type: "standard" or "json".
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter: logging.Formatter = JsonFormatter() if format_type == "json" else StandardFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ContextFilter())
    root_logger.addHandler(console_handler)

    logging.getLogger("credit_engine").setLevel(log_level)

    # Request-level chatter from the HTTP and database drivers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg").setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra"):
            log_data.update(record.extra)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)
