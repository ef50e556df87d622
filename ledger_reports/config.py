"""
Reporting Configuration Schema.

Presentation options for the statements built by ReportService.  The
classification itself comes from account types, not code prefixes, so
there is nothing here that can put an account in the wrong section.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Self

from ledger_kernel.logging_config import get_logger

logger = get_logger("reports.config")


@dataclass(frozen=True)
class ReportingConfig:
    """
    Configuration schema for report generation.
    """

    # Entity name shown on reports
    entity_name: str = "Company"

    # Currency code shown on reports (single-currency ledger)
    currency: str = "USD"

    # Rounding precision for percentages
    display_precision: int = 2

    # Whether idle accounts (no activity) appear in the trial balance
    include_zero_balances: bool = False

    # Label of the computed equity line on the balance sheet
    current_earnings_label: str = "Current Earnings"

    def __post_init__(self):
        if self.display_precision < 0:
            raise ValueError("display_precision cannot be negative")
        if len(self.currency) != 3:
            raise ValueError("currency must be a 3-letter ISO 4217 code")

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from a mapping; unknown keys raise ValueError."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown reporting config keys: {unknown}")
        logger.info(
            "reporting_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
