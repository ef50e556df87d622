"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import (
    Account,
    AccountType,
    NormalBalance,
    normal_balance_for,
)
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine

__all__ = [
    "Account",
    "AccountType",
    "NormalBalance",
    "normal_balance_for",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
]
