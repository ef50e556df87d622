"""
Ledger Kernel

A company-scoped double-entry ledger core with:
- Balanced posting enforced at commit time
- Immutable posted history (cancellation appends reversing entries)
- Cached account balances that are always rebuildable from history
- Lost-update-free concurrent posting
"""

__version__ = "0.1.0"
