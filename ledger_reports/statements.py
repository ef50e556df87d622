"""
Pure financial statement transformation functions.

These functions transform per-account activity (as read by the
LedgerSelector) and external open items into structured reports.
ZERO I/O. ZERO side effects.

All monetary values are Decimal. All inputs/outputs are frozen dataclasses.

Functions in this module follow the ledger_kernel/domain/ purity convention:
- No database access
- No clock access (timestamps arrive inside ReportMetadata)
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ledger_kernel.domain.money import ZERO
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.selectors.ledger_selector import AccountActivity
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
    StatementLine,
    StatementSection,
    TrialBalanceLineItem,
    TrialBalanceReport,
)

logger = get_logger("reports.statements")

HUNDRED = Decimal("100")


# =========================================================================
# Helpers
# =========================================================================


def _percentage(part: Decimal, whole: Decimal, precision: int) -> Decimal:
    """part / whole * 100, quantized; 0 when whole is not positive."""
    if whole <= ZERO:
        return Decimal("0").quantize(Decimal(1).scaleb(-precision))
    return (part / whole * HUNDRED).quantize(
        Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP
    )


def _section(
    label: str,
    activity: Iterable[AccountActivity],
    include_zero: bool,
) -> StatementSection:
    lines = tuple(
        StatementLine(
            account_id=item.account.account_id,
            account_code=item.account.code,
            account_name=item.account.name,
            amount=item.balance,
        )
        for item in activity
        if include_zero or item.balance != ZERO
    )
    return StatementSection(
        label=label,
        lines=lines,
        total=sum((line.amount for line in lines), ZERO),
    )


def _of_type(
    activity: Iterable[AccountActivity], account_type: AccountType
) -> list[AccountActivity]:
    return [item for item in activity if item.account.account_type == account_type]


# =========================================================================
# Trial Balance
# =========================================================================


def trial_balance_line(item: AccountActivity) -> TrialBalanceLineItem:
    """
    Place an account's natural balance on the debit or credit side.

    Positive natural balance goes on the normal side, negative on the
    opposite side, as a positive amount.
    """
    natural = item.balance
    on_normal_side = natural >= ZERO
    magnitude = abs(natural)
    debit_side = item.account.is_debit_normal == on_normal_side
    return TrialBalanceLineItem(
        account_id=item.account.account_id,
        account_code=item.account.code,
        account_name=item.account.name,
        account_type=item.account.account_type.value,
        debit_balance=magnitude if debit_side else ZERO,
        credit_balance=ZERO if debit_side else magnitude,
        net_balance=natural,
    )


def build_trial_balance(
    activity: Sequence[AccountActivity],
    metadata: ReportMetadata,
    config: ReportingConfig,
) -> TrialBalanceReport:
    """Trial balance of every account with posted activity, by code."""
    lines = tuple(
        trial_balance_line(item)
        for item in activity
        if config.include_zero_balances or item.has_activity
    )
    total_debits = sum((line.debit_balance for line in lines), ZERO)
    total_credits = sum((line.credit_balance for line in lines), ZERO)
    return TrialBalanceReport(
        metadata=metadata,
        lines=lines,
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=total_debits == total_credits,
    )


def check_trial_balance(
    total_debits: Decimal,
    total_credits: Decimal,
    as_of: date | None = None,
) -> LedgerDiagnostic:
    """
    Ledger-wide debit/credit equality as a diagnostic.

    Never raises; an imbalance is logged at ERROR because it means the
    ledger invariant has been broken outside the posting path.
    """
    diagnostic = LedgerDiagnostic(
        as_of_date=as_of,
        total_debits=total_debits,
        total_credits=total_credits,
    )
    if not diagnostic.is_balanced:
        logger.error(
            "trial_balance_invariant_failed",
            extra={
                "as_of": as_of.isoformat() if as_of else None,
                "total_debits": str(total_debits),
                "total_credits": str(total_credits),
                "difference": str(diagnostic.difference),
            },
        )
    return diagnostic


# =========================================================================
# Balance Sheet
# =========================================================================


def current_earnings(activity: Iterable[AccountActivity]) -> Decimal:
    """Revenue minus expense, both in natural sign."""
    earnings = ZERO
    for item in activity:
        if item.account.account_type == AccountType.REVENUE:
            earnings += item.balance
        elif item.account.account_type == AccountType.EXPENSE:
            earnings -= item.balance
    return earnings


def build_balance_sheet(
    activity: Sequence[AccountActivity],
    metadata: ReportMetadata,
    config: ReportingConfig,
) -> BalanceSheetReport:
    """
    Balance sheet from cumulative activity up to the report date.

    Revenue and expense accounts do not get sections of their own; their
    net is folded into equity as the current-earnings line.
    """
    include_zero = config.include_zero_balances
    assets = _section("Assets", _of_type(activity, AccountType.ASSET), include_zero)
    liabilities = _section(
        "Liabilities", _of_type(activity, AccountType.LIABILITY), include_zero
    )
    equity_accounts = _section(
        "Equity", _of_type(activity, AccountType.EQUITY), include_zero
    )

    earnings = current_earnings(activity)
    equity_lines = equity_accounts.lines
    if earnings != ZERO or include_zero:
        equity_lines = equity_lines + (
            StatementLine(
                account_id=None,
                account_code="",
                account_name=config.current_earnings_label,
                amount=earnings,
            ),
        )
    equity = StatementSection(
        label="Equity",
        lines=equity_lines,
        total=equity_accounts.total + earnings,
    )

    total_le = liabilities.total + equity.total
    return BalanceSheetReport(
        metadata=metadata,
        assets=assets,
        liabilities=liabilities,
        equity=equity,
        current_earnings=earnings,
        total_assets=assets.total,
        total_liabilities=liabilities.total,
        total_equity=equity.total,
        total_liabilities_and_equity=total_le,
        is_balanced=assets.total == total_le,
    )


# =========================================================================
# Profit & Loss
# =========================================================================


def build_profit_and_loss(
    activity: Sequence[AccountActivity],
    metadata: ReportMetadata,
    config: ReportingConfig,
) -> ProfitAndLossReport:
    """P&L from activity restricted to the report period."""
    include_zero = config.include_zero_balances
    revenue = _section(
        "Revenue", _of_type(activity, AccountType.REVENUE), include_zero
    )
    expenses = _section(
        "Expenses", _of_type(activity, AccountType.EXPENSE), include_zero
    )
    net_income = revenue.total - expenses.total
    return ProfitAndLossReport(
        metadata=metadata,
        revenue=revenue,
        expenses=expenses,
        total_revenue=revenue.total,
        total_expenses=expenses.total,
        net_income=net_income,
        profit_margin=_percentage(
            net_income, revenue.total, config.display_precision
        ),
    )


# =========================================================================
# Aging
# =========================================================================


def bucket_for(days_overdue: int) -> AgingBucket:
    if days_overdue <= 0:
        return AgingBucket.CURRENT
    if days_overdue <= 30:
        return AgingBucket.DAYS_1_30
    if days_overdue <= 60:
        return AgingBucket.DAYS_31_60
    if days_overdue <= 90:
        return AgingBucket.DAYS_61_90
    return AgingBucket.OVER_90


def build_aging(
    items: Iterable[OpenItem],
    as_of: date,
    metadata: ReportMetadata,
    config: ReportingConfig,
) -> AgingReport:
    """
    Bucket open items by days overdue relative to ``as_of``.

    Items with a zero balance are skipped.  Every bucket appears in the
    result, empty ones with zero amount and count.
    """
    lines: list[AgingLine] = []
    amounts = {bucket: ZERO for bucket in AgingBucket}
    counts = {bucket: 0 for bucket in AgingBucket}

    for item in items:
        if item.balance_due == ZERO:
            continue
        days = (as_of - item.due_date).days
        bucket = bucket_for(days)
        lines.append(AgingLine(item=item, days_overdue=max(0, days), bucket=bucket))
        amounts[bucket] += item.balance_due
        counts[bucket] += 1

    total = sum(amounts.values(), ZERO)
    current = amounts[AgingBucket.CURRENT]
    precision = config.display_precision
    return AgingReport(
        metadata=metadata,
        lines=tuple(lines),
        buckets=tuple(
            AgingBucketTotal(bucket=bucket, amount=amounts[bucket], count=counts[bucket])
            for bucket in AgingBucket
        ),
        total_outstanding=total,
        current_percentage=_percentage(current, total, precision),
        overdue_percentage=_percentage(total - current, total, precision),
    )
