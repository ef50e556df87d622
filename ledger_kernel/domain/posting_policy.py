"""
PostingPolicy -- tunables the PostingEngine reads at construction.

Pure value object.  Built directly in tests, or from the loaded
configuration by ledger_config.bridges.build_posting_policy().
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PostingPolicy:
    """
    Contract:
        balance_tolerance is the largest |debits - credits| still accepted
        at posting time.  The default is exact: amounts are whole minor
        units, so any difference is an imbalance.

    Guarantees:
        - balance_tolerance >= 0 and has at most two decimal places.
        - max_attempts >= 1; retry_backoff_seconds >= 0.
    """

    balance_tolerance: Decimal = Decimal("0.00")
    max_attempts: int = 3
    retry_backoff_seconds: float = 0.05

    def __post_init__(self) -> None:
        if not isinstance(self.balance_tolerance, Decimal):
            raise TypeError("balance_tolerance must be Decimal")
        if self.balance_tolerance < 0:
            raise ValueError("balance_tolerance must be non-negative")
        if self.balance_tolerance != self.balance_tolerance.quantize(Decimal("0.01")):
            raise ValueError("balance_tolerance must have at most two decimal places")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.retry_backoff_seconds < 0:
            raise ValueError("retry_backoff_seconds must be non-negative")
