"""
Structured JSON logging for the compliance kernel.

Every record under the ``compliance_kernel`` logger is written as one JSON
object per line.  Three sources are merged into each line:

1. the envelope (``ts``, ``level``, ``logger``, ``message``),
2. the request context held in ``LogContext`` (which task, which activity,
   which acting user), and
3. the ``extra={...}`` fields of the call.

Services log event names, not sentences::

    logger.info("decision_submitted", extra={"stage": stage, "version": 3})
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

_LOGGER_PREFIX = "compliance_kernel"


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------

_CONTEXT_FIELDS = (
    "correlation_id",
    "task_id",
    "activity_id",
    "actor_id",
    "trace_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"compliance_log_{name}", default=None)
    for name in _CONTEXT_FIELDS
}


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - set(_CONTEXT_FIELDS)
    if unknown:
        raise TypeError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")


class LogContext:
    """
    Per-request log fields carried in contextvars.

    Safe across threads and asyncio tasks: each sees its own values.
    ``None`` means "leave as is" in both ``set`` and ``bind``.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        _check_fields(fields)
        for name, value in fields.items():
            if value is not None:
                _context_vars[name].set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        values = {name: var.get() for name, var in _context_vars.items()}
        return {name: value for name, value in values.items() if value is not None}

    @staticmethod
    def clear() -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type[LogContext]]:
        """Set ``fields`` for the duration of a ``with`` block."""
        _check_fields(fields)
        tokens = [
            (_context_vars[name], _context_vars[name].set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else on a record came from extra=.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    # Kernel errors keep their details as attributes (task_id, stage, ...)
    for key, value in vars(exc).items():
        if not key.startswith("_"):
            fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``compliance_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``compliance_kernel`` logger.

    Only the first call has an effect; later calls return immediately.
    ``level`` accepts a name such as ``"DEBUG"`` (the config's ``log_level``).
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``.  Tests only."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
