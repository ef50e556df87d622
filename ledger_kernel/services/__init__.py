"""Kernel services: the write side of the ledger."""

from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.journal_store import JournalStore
from ledger_kernel.services.posting_engine import PostingEngine
from ledger_kernel.services.sequence_service import SequenceService

__all__ = [
    "AccountRegistry",
    "JournalStore",
    "PostingEngine",
    "SequenceService",
]
