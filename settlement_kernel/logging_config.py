"""
Logging -- one JSON object per line, stamped with the active settlement run.

Responsibility:
    Every log record leaving the ``settlement_kernel`` logger tree is a
    single JSON line. Run-scoped fields (run id, park, settlement year,
    actor, correlation id) live in context variables so that worker
    threads started with ``contextvars.copy_context`` log under the run
    that spawned them.

Architecture position:
    Kernel -- imported by engines and services; imports nothing of ours.

Invariants enforced:
    - A context field beats an ``extra`` key of the same name.
    - datetimes serialize as ISO 8601, other non-JSON values (Decimal,
      UUID) as their str().
    - configure_logging installs at most one handler until reset_logging.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, TextIO

ROOT_LOGGER_NAME = "settlement_kernel"

_CONTEXT_FIELDS = (
    "run_id",
    "park_id",
    "settlement_year",
    "actor_id",
    "correlation_id",
)

_context_vars: dict[str, ContextVar[str | None]] = {
    field: ContextVar(f"settlement_log_{field}", default=None)
    for field in _CONTEXT_FIELDS
}


class LogContext:
    """
    Run-scoped fields attached to every structured log line.

    Contract:
        ``set`` overwrites, ``bind`` scopes to a ``with`` block and restores
        the previous values on exit, ``clear`` forgets everything.
    Non-goals:
        Field names outside the five known ones are dropped silently.
    """

    @classmethod
    def set(
        cls,
        *,
        run_id: str | None = None,
        park_id: str | None = None,
        settlement_year: str | None = None,
        actor_id: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        """Overwrite the given fields; None leaves a field as it is."""
        values = {
            "run_id": run_id,
            "park_id": park_id,
            "settlement_year": settlement_year,
            "actor_id": actor_id,
            "correlation_id": correlation_id,
        }
        for field, value in values.items():
            if value is not None:
                _context_vars[field].set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            field: var.get()
            for field, var in _context_vars.items()
            if var.get() is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _context_vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[type["LogContext"]]:
        tokens = [
            (_context_vars[name], _context_vars[name].set(value))
            for name, value in fields.items()
            if name in _context_vars and value is not None
        ]
        try:
            yield LogContext
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as one JSON line: ts, level, logger, message, fields."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRIBUTES:
                line.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            line.update(self._exception_fields(record))

        return json.dumps(line, default=_to_json)

    def _exception_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        """
        exc_type, exc_message and the traceback, plus ``exc_code`` and one
        ``exc_<attr>`` entry per public attribute of a SettlementKernelError.
        """
        exc = record.exc_info[1]
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        for attr, value in vars(exc).items():
            if attr != "code" and not attr.startswith("_"):
                fields[f"exc_{attr}"] = value
        fields["traceback"] = self.formatException(record.exc_info)
        return fields


def get_logger(name: str) -> logging.Logger:
    """``get_logger("engines.payout")`` -> ``settlement_kernel.engines.payout``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_configure_lock = threading.Lock()
_handler_installed = False


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Send the settlement_kernel tree through a StructuredFormatter.

    Calls after the first are ignored until reset_logging(). A supplied
    ``handler`` wins over ``stream``; with neither, lines go to stderr.
    """
    global _handler_installed
    with _configure_lock:
        if _handler_installed:
            return
        _handler_installed = True

        if handler is None:
            handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(StructuredFormatter())

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(handler)


def reset_logging() -> None:
    """Drop installed handlers so tests can configure again."""
    global _handler_installed
    with _configure_lock:
        _handler_installed = False
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
