"""
Structured logging for the ledger.

Every record under the ``ledger_kernel`` logger tree is written as one JSON
object. A posting run binds a :class:`LedgerLogContext` (company, actor,
entry, operation, attempt) so that services called beneath the engine log
plain events and still carry the identifiers needed to group them per run.
"""

__all__ = [
    "LedgerLogContext",
    "LedgerJSONFormatter",
    "current_context",
    "log_context",
    "get_logger",
    "configure_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TextIO
from uuid import UUID

ROOT_LOGGER = "ledger_kernel"
_HANDLER_NAME = "ledger_json"


@dataclass(frozen=True)
class LedgerLogContext:
    """Identifiers attached to every record emitted inside a bound block."""

    company_id: str | None = None
    actor_id: str | None = None
    correlation_id: str | None = None
    entry_id: str | None = None
    operation: str | None = None
    attempt: int | None = None

    def as_fields(self) -> dict[str, str | int]:
        return {name: value for name, value in asdict(self).items() if value is not None}


_context: ContextVar[LedgerLogContext] = ContextVar(
    "ledger_log_context", default=LedgerLogContext()
)


def current_context() -> LedgerLogContext:
    return _context.get()


@contextmanager
def log_context(**fields: Any) -> Iterator[LedgerLogContext]:
    """
    Layer ``fields`` over the current context for the duration of the block.

    UUIDs are stored as text and ``None`` keeps the outer value. An unknown
    field name raises ``TypeError``. The outer context is restored on exit,
    including when the block raises.
    """
    updates = {
        name: str(value) if isinstance(value, UUID) else value
        for name, value in fields.items()
        if value is not None
    }
    token = _context.set(replace(_context.get(), **updates))
    try:
        yield _context.get()
    finally:
        _context.reset(token)


# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _json_value(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _error_payload(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    code = getattr(exc, "code", None)
    if code is not None:
        error["code"] = code
        fields = {k: v for k, v in vars(exc).items() if not k.startswith("_")}
        if fields:
            error["fields"] = fields
    return error


class LedgerJSONFormatter(logging.Formatter):
    """One JSON line per record: header, bound context, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        header = set(payload)
        payload.update(_context.get().as_fields())

        # An explicit extra overrides a bound context field of the same name.
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and key not in header:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload["error"] = _error_payload(record.exc_info[1])
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_value)


def get_logger(name: str) -> logging.Logger:
    """Logger ``ledger_kernel.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Attach the JSON handler to the ``ledger_kernel`` tree.

    The first call wins: later calls leave the installed handler and level
    in place and return that handler. The tree does not propagate to the
    root logger.
    """
    root = logging.getLogger(ROOT_LOGGER)
    with _lock:
        for existing in root.handlers:
            if existing.get_name() == _HANDLER_NAME:
                return existing

        installed = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        installed.set_name(_HANDLER_NAME)
        installed.setFormatter(LedgerJSONFormatter())
        root.addHandler(installed)
        root.setLevel(level)
        root.propagate = False
        return installed
