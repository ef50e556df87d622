"""
Financial Reporting (``ledger_reports``).

Responsibility
--------------
Read-only reports derived from the posted ledger: trial balance, balance
sheet, profit & loss, receivable/payable aging, and the ledger-wide
debit/credit diagnostic.

Architecture position
---------------------
Sits above ``ledger_kernel``.  Statement math lives in pure functions
(``statements.py``); ``ReportService`` only loads inputs through the
kernel's ``LedgerSelector``.  Nothing here persists state.
"""

from ledger_reports.config import ReportingConfig
from ledger_reports.models import (
    AgingBucket,
    AgingBucketTotal,
    AgingLine,
    AgingReport,
    BalanceSheetReport,
    LedgerDiagnostic,
    OpenItem,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    TrialBalanceLineItem,
    TrialBalanceReport,
)
from ledger_reports.service import ReportService

__all__ = [
    "AgingBucket",
    "AgingBucketTotal",
    "AgingLine",
    "AgingReport",
    "BalanceSheetReport",
    "LedgerDiagnostic",
    "OpenItem",
    "ProfitAndLossReport",
    "ReportMetadata",
    "ReportService",
    "ReportType",
    "ReportingConfig",
    "StatementLine",
    "StatementSection",
    "TrialBalanceLineItem",
    "TrialBalanceReport",
]
