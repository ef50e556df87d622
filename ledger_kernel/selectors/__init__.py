"""Read-only query selectors."""

from ledger_kernel.selectors.ledger_selector import (
    AccountActivity,
    AccountLedger,
    AccountSummary,
    DayBook,
    LedgerMovement,
    LedgerSelector,
)

__all__ = [
    "AccountActivity",
    "AccountLedger",
    "AccountSummary",
    "DayBook",
    "LedgerMovement",
    "LedgerSelector",
]
