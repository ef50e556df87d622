"""
ledger_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the runtime way to obtain configuration through
    ``get_active_config()``.  Services never read configuration files or
    environment variables directly; they receive values built by the
    bridges in ``ledger_config.bridges``.

Architecture position:
    Configuration -- sits above ``ledger_kernel`` and ``ledger_reports``.
    The kernel MUST NEVER import from ``ledger_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configured YAML file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every load emits a ``ledger_config_loaded`` log entry naming the
    source file and the effective posting tolerance.
"""

from __future__ import annotations

import threading
from pathlib import Path

from ledger_config.loader import load_config
from ledger_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LoggingSection,
    PostingConfig,
    ReportingSection,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("config")

_active: LedgerConfig | None = None
_lock = threading.Lock()


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """
    Return the process configuration, loading it on first use.

    ``path`` only matters on the first call (or after ``reset_config()``);
    afterwards the cached configuration is returned.
    """
    global _active
    with _lock:
        if _active is None:
            _active = load_config(path)
            logger.info(
                "ledger_config_loaded",
                extra={
                    "source": _active.source,
                    "balance_tolerance": str(_active.posting.balance_tolerance),
                    "max_attempts": _active.posting.max_attempts,
                },
            )
        return _active


def reset_config() -> None:
    """Drop the cached configuration. FOR TESTING ONLY."""
    global _active
    with _lock:
        _active = None


__all__ = [
    "DatabaseConfig",
    "LedgerConfig",
    "LoggingSection",
    "PostingConfig",
    "ReportingSection",
    "get_active_config",
    "load_config",
    "reset_config",
]
