"""
Financial Reporting Models (``ledger_reports.models``).

Responsibility
--------------
Frozen dataclass value objects for report outputs: trial balance, balance
sheet, profit & loss, aging schedules and the ledger diagnostic.

Architecture position
---------------------
**Reports layer** -- pure data definitions with ZERO I/O.  Built by the
functions in ``statements.py`` and returned by ``ReportService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReportType(str, Enum):
    """Types of financial reports."""

    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    PROFIT_AND_LOSS = "profit_and_loss"
    RECEIVABLES_AGING = "receivables_aging"
    PAYABLES_AGING = "payables_aging"


class AgingBucket(str, Enum):
    """Days-overdue buckets; upper bounds are inclusive."""

    CURRENT = "current"
    DAYS_1_30 = "1-30"
    DAYS_31_60 = "31-60"
    DAYS_61_90 = "61-90"
    OVER_90 = "over90"


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO timestamp from the injected clock
    period_start: date | None = None
    period_end: date | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLineItem:
    """
    One account in the trial balance.

    Exactly one of debit_balance / credit_balance is nonzero (unless the
    account nets to zero): the natural balance lands on the account's
    normal side when positive and on the opposite side when negative.
    """

    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    debit_balance: Decimal
    credit_balance: Decimal
    net_balance: Decimal  # natural sign


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    lines: tuple[TrialBalanceLineItem, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool


# =========================================================================
# Balance Sheet / Profit & Loss
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """A line of a statement section.  Computed lines have no account_id."""

    account_id: UUID | None
    account_code: str
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class StatementSection:
    label: str
    lines: tuple[StatementLine, ...]
    total: Decimal


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Balance sheet as of a date.

    Equity includes the computed current-earnings line (revenue minus
    expense since inception), so a balanced ledger always satisfies
    total_assets == total_liabilities + total_equity.
    """

    metadata: ReportMetadata
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    current_earnings: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool


@dataclass(frozen=True)
class ProfitAndLossReport:
    """
    Revenue and expense movements within a date range.

    profit_margin is net_income / total_revenue as a percentage, 0 when
    there is no revenue.
    """

    metadata: ReportMetadata
    revenue: StatementSection
    expenses: StatementSection
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    profit_margin: Decimal


# =========================================================================
# Aging
# =========================================================================


@dataclass(frozen=True)
class OpenItem:
    """An unpaid receivable or payable supplied by the calling workflow."""

    reference: str
    party: str
    due_date: date
    balance_due: Decimal


@dataclass(frozen=True)
class AgingLine:
    item: OpenItem
    days_overdue: int  # never negative; items not yet due show 0
    bucket: AgingBucket


@dataclass(frozen=True)
class AgingBucketTotal:
    bucket: AgingBucket
    amount: Decimal
    count: int


@dataclass(frozen=True)
class AgingReport:
    metadata: ReportMetadata
    lines: tuple[AgingLine, ...]
    buckets: tuple[AgingBucketTotal, ...]  # always all five, in bucket order
    total_outstanding: Decimal
    current_percentage: Decimal
    overdue_percentage: Decimal

    def bucket_total(self, bucket: AgingBucket) -> AgingBucketTotal:
        for total in self.buckets:
            if total.bucket == bucket:
                return total
        raise KeyError(bucket)


# =========================================================================
# Diagnostics
# =========================================================================


@dataclass(frozen=True)
class LedgerDiagnostic:
    """Ledger-wide debit/credit equality check."""

    as_of_date: date | None
    total_debits: Decimal
    total_credits: Decimal

    @property
    def difference(self) -> Decimal:
        return self.total_debits - self.total_credits

    @property
    def is_balanced(self) -> bool:
        return self.difference == Decimal("0")
