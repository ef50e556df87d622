"""
LedgerConfig schema.

Typed, frozen representation of the ledger's runtime configuration.  YAML
files are parsed into these types by the loader; bridges translate them
into kernel and report inputs.  Validation happens in ``__post_init__``
so an invalid value never survives loading.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection and pool settings passed to the kernel engine factory."""

    url: str = "sqlite:///ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    sqlite_busy_timeout: float = 30.0

    def __post_init__(self):
        if not self.url:
            raise ValueError("database.url is required")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow cannot be negative")
        if self.pool_timeout < 0 or self.sqlite_busy_timeout < 0:
            raise ValueError("database timeouts cannot be negative")


@dataclass(frozen=True)
class PostingConfig:
    """Posting tolerance and conflict-retry settings."""

    balance_tolerance: Decimal = Decimal("0.00")
    max_attempts: int = 3
    retry_backoff_seconds: float = 0.05

    def __post_init__(self):
        if not isinstance(self.balance_tolerance, Decimal):
            raise ValueError("posting.balance_tolerance must be a decimal amount")
        if self.balance_tolerance < 0:
            raise ValueError("posting.balance_tolerance cannot be negative")
        if self.balance_tolerance != self.balance_tolerance.quantize(Decimal("0.01")):
            raise ValueError(
                "posting.balance_tolerance must have at most two decimal places"
            )
        if self.max_attempts < 1:
            raise ValueError("posting.max_attempts must be at least 1")
        if self.retry_backoff_seconds < 0:
            raise ValueError("posting.retry_backoff_seconds cannot be negative")


@dataclass(frozen=True)
class ReportingSection:
    """Report presentation settings (see ledger_reports.ReportingConfig)."""

    entity_name: str = "Company"
    currency: str = "USD"
    display_precision: int = 2
    include_zero_balances: bool = False
    current_earnings_label: str = "Current Earnings"

    def __post_init__(self):
        if len(self.currency) != 3:
            raise ValueError("reporting.currency must be a 3-letter ISO 4217 code")
        if self.display_precision < 0:
            raise ValueError("reporting.display_precision cannot be negative")


@dataclass(frozen=True)
class LoggingSection:
    level: str = "INFO"

    def __post_init__(self):
        if self.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {_LOG_LEVELS}")


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """Complete runtime configuration.  ``source`` names the file loaded, if any."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    posting: PostingConfig = field(default_factory=PostingConfig)
    reporting: ReportingSection = field(default_factory=ReportingSection)
    logging: LoggingSection = field(default_factory=LoggingSection)
    source: str | None = None
