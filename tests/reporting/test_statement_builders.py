"""
Pure function unit tests for ledger_reports.statements.

NO database, NO I/O. Tests every transformation with synthetic activity.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.models.account import AccountType, NormalBalance
from ledger_kernel.selectors.ledger_selector import AccountActivity, AccountSummary
from ledger_reports.config import ReportingConfig
from ledger_reports.models import (
    AgingBucket,
    OpenItem,
    ReportMetadata,
    ReportType,
)
from ledger_reports.statements import (
    bucket_for,
    build_aging,
    build_balance_sheet,
    build_profit_and_loss,
    build_trial_balance,
    check_trial_balance,
    current_earnings,
    trial_balance_line,
)

# =========================================================================
# Fixtures / helpers
# =========================================================================

AS_OF = date(2024, 6, 30)

_NORMAL = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}


def _config(**overrides) -> ReportingConfig:
    return ReportingConfig(**overrides) if overrides else ReportingConfig.with_defaults()


def _metadata(report_type: ReportType = ReportType.TRIAL_BALANCE) -> ReportMetadata:
    return ReportMetadata(
        report_type=report_type,
        entity_name="Test Company",
        currency="USD",
        as_of_date=AS_OF,
        generated_at="2024-06-30T23:59:59+00:00",
    )


def _activity(code, name, account_type, debit="0.00", credit="0.00") -> AccountActivity:
    return AccountActivity(
        account=AccountSummary(
            account_id=uuid4(),
            code=code,
            name=name,
            account_type=account_type,
            normal_balance=_NORMAL[account_type],
            parent_id=None,
            is_active=True,
        ),
        debit_total=Decimal(debit),
        credit_total=Decimal(credit),
    )


def _ledger() -> list[AccountActivity]:
    """Owner invests 1000, sells 500 on credit, spends 200 cash."""
    return [
        _activity("1000", "Cash", AccountType.ASSET, "1000.00", "200.00"),
        _activity("1100", "Accounts Receivable", AccountType.ASSET, "500.00"),
        _activity("1500", "Inventory", AccountType.ASSET),
        _activity("2000", "Accounts Payable", AccountType.LIABILITY),
        _activity("3000", "Owner's Equity", AccountType.EQUITY, credit="1000.00"),
        _activity("4000", "Sales Revenue", AccountType.REVENUE, credit="500.00"),
        _activity("5100", "Operating Expenses", AccountType.EXPENSE, "200.00"),
    ]


# =========================================================================
# Trial balance
# =========================================================================


class TestTrialBalanceLine:
    def test_debit_normal_positive_on_debit_side(self):
        line = trial_balance_line(_activity("1000", "Cash", AccountType.ASSET, "80.00", "30.00"))
        assert line.debit_balance == Decimal("50.00")
        assert line.credit_balance == Decimal("0.00")
        assert line.net_balance == Decimal("50.00")
        assert line.account_type == "asset"

    def test_credit_normal_positive_on_credit_side(self):
        line = trial_balance_line(
            _activity("4000", "Sales", AccountType.REVENUE, credit="75.00")
        )
        assert line.credit_balance == Decimal("75.00")
        assert line.debit_balance == Decimal("0.00")

    def test_overdrawn_asset_flips_side(self):
        line = trial_balance_line(
            _activity("1000", "Cash", AccountType.ASSET, "10.00", "25.00")
        )
        assert line.net_balance == Decimal("-15.00")
        assert line.credit_balance == Decimal("15.00")
        assert line.debit_balance == Decimal("0.00")


class TestBuildTrialBalance:
    def test_totals_balance(self):
        report = build_trial_balance(_ledger(), _metadata(), _config())
        assert report.total_debits == Decimal("1500.00")
        assert report.total_credits == Decimal("1500.00")
        assert report.is_balanced

    def test_idle_accounts_hidden_by_default(self):
        report = build_trial_balance(_ledger(), _metadata(), _config())
        assert [line.account_code for line in report.lines] == [
            "1000", "1100", "3000", "4000", "5100",
        ]

    def test_idle_accounts_shown_when_configured(self):
        report = build_trial_balance(
            _ledger(), _metadata(), _config(include_zero_balances=True)
        )
        assert len(report.lines) == 7

    def test_account_netted_to_zero_still_listed(self):
        activity = [_activity("1000", "Cash", AccountType.ASSET, "10.00", "10.00")]
        report = build_trial_balance(activity, _metadata(), _config())
        assert len(report.lines) == 1
        assert report.lines[0].net_balance == Decimal("0.00")

    def test_empty_ledger(self):
        report = build_trial_balance([], _metadata(), _config())
        assert report.lines == ()
        assert report.is_balanced


class TestCheckTrialBalance:
    def test_balanced(self):
        diagnostic = check_trial_balance(Decimal("10.00"), Decimal("10.00"), AS_OF)
        assert diagnostic.is_balanced
        assert diagnostic.difference == Decimal("0.00")

    def test_imbalance_logged(self, captured_logs):
        diagnostic = check_trial_balance(Decimal("10.00"), Decimal("9.00"), AS_OF)
        assert not diagnostic.is_balanced
        assert diagnostic.difference == Decimal("1.00")
        errors = [r for r in captured_logs() if r["message"] == "trial_balance_invariant_failed"]
        assert len(errors) == 1
        assert errors[0]["level"] == logging.getLevelName(logging.ERROR)
        assert errors[0]["difference"] == "1.00"


# =========================================================================
# Balance sheet
# =========================================================================


class TestBalanceSheet:
    def test_equation_holds_with_current_earnings(self):
        report = build_balance_sheet(_ledger(), _metadata(ReportType.BALANCE_SHEET), _config())
        assert report.total_assets == Decimal("1300.00")
        assert report.total_liabilities == Decimal("0.00")
        assert report.current_earnings == Decimal("300.00")
        assert report.total_equity == Decimal("1300.00")
        assert report.total_liabilities_and_equity == Decimal("1300.00")
        assert report.is_balanced

    def test_earnings_line_appended_to_equity(self):
        report = build_balance_sheet(_ledger(), _metadata(ReportType.BALANCE_SHEET), _config())
        last = report.equity.lines[-1]
        assert last.account_id is None
        assert last.account_name == "Current Earnings"
        assert last.amount == Decimal("300.00")

    def test_custom_earnings_label(self):
        report = build_balance_sheet(
            _ledger(),
            _metadata(ReportType.BALANCE_SHEET),
            _config(current_earnings_label="Profit for the period"),
        )
        assert report.equity.lines[-1].account_name == "Profit for the period"

    def test_no_earnings_line_when_zero(self):
        activity = [
            _activity("1000", "Cash", AccountType.ASSET, "100.00"),
            _activity("3000", "Equity", AccountType.EQUITY, credit="100.00"),
        ]
        report = build_balance_sheet(activity, _metadata(ReportType.BALANCE_SHEET), _config())
        assert all(line.account_id is not None for line in report.equity.lines)
        assert report.is_balanced

    def test_zero_accounts_excluded(self):
        report = build_balance_sheet(_ledger(), _metadata(ReportType.BALANCE_SHEET), _config())
        assert [line.account_code for line in report.assets.lines] == ["1000", "1100"]
        assert report.liabilities.lines == ()

    def test_loss_reduces_equity(self):
        activity = [
            _activity("1000", "Cash", AccountType.ASSET, "100.00", "150.00"),
            _activity("2000", "Loan", AccountType.LIABILITY, credit="100.00"),
            _activity("5100", "Rent", AccountType.EXPENSE, "150.00"),
        ]
        report = build_balance_sheet(activity, _metadata(ReportType.BALANCE_SHEET), _config())
        assert report.current_earnings == Decimal("-150.00")
        assert report.total_assets == Decimal("-50.00")
        assert report.is_balanced


def test_current_earnings_ignores_balance_sheet_accounts():
    assert current_earnings(_ledger()) == Decimal("300.00")


# =========================================================================
# Profit & loss
# =========================================================================


class TestProfitAndLoss:
    def test_net_income_and_margin(self):
        report = build_profit_and_loss(
            _ledger(), _metadata(ReportType.PROFIT_AND_LOSS), _config()
        )
        assert report.total_revenue == Decimal("500.00")
        assert report.total_expenses == Decimal("200.00")
        assert report.net_income == Decimal("300.00")
        assert report.profit_margin == Decimal("60.00")

    def test_margin_zero_without_revenue(self):
        activity = [_activity("5100", "Rent", AccountType.EXPENSE, "50.00")]
        report = build_profit_and_loss(
            activity, _metadata(ReportType.PROFIT_AND_LOSS), _config()
        )
        assert report.net_income == Decimal("-50.00")
        assert report.profit_margin == Decimal("0.00")

    def test_margin_rounds_half_up(self):
        activity = [
            _activity("4000", "Sales", AccountType.REVENUE, credit="3.00"),
            _activity("5100", "Costs", AccountType.EXPENSE, "2.00"),
        ]
        report = build_profit_and_loss(
            activity, _metadata(ReportType.PROFIT_AND_LOSS), _config(display_precision=1)
        )
        assert report.profit_margin == Decimal("33.3")

    def test_only_income_statement_accounts(self):
        report = build_profit_and_loss(
            _ledger(), _metadata(ReportType.PROFIT_AND_LOSS), _config()
        )
        assert [line.account_code for line in report.revenue.lines] == ["4000"]
        assert [line.account_code for line in report.expenses.lines] == ["5100"]


# =========================================================================
# Aging
# =========================================================================


@pytest.mark.parametrize(
    "days, bucket",
    [
        (-5, AgingBucket.CURRENT),
        (0, AgingBucket.CURRENT),
        (1, AgingBucket.DAYS_1_30),
        (30, AgingBucket.DAYS_1_30),
        (31, AgingBucket.DAYS_31_60),
        (60, AgingBucket.DAYS_31_60),
        (61, AgingBucket.DAYS_61_90),
        (90, AgingBucket.DAYS_61_90),
        (91, AgingBucket.OVER_90),
    ],
)
def test_bucket_boundaries(days, bucket):
    assert bucket_for(days) == bucket


class TestBuildAging:
    def _items(self):
        return [
            OpenItem("INV-1", "Acme", date(2024, 7, 15), Decimal("100.00")),
            OpenItem("INV-2", "Acme", date(2024, 6, 10), Decimal("50.00")),
            OpenItem("INV-3", "Globex", date(2024, 3, 1), Decimal("50.00")),
            OpenItem("INV-4", "Globex", date(2024, 5, 1), Decimal("0.00")),
        ]

    def test_buckets_and_totals(self):
        report = build_aging(
            self._items(), AS_OF, _metadata(ReportType.RECEIVABLES_AGING), _config()
        )
        assert report.total_outstanding == Decimal("200.00")
        assert report.bucket_total(AgingBucket.CURRENT).amount == Decimal("100.00")
        assert report.bucket_total(AgingBucket.DAYS_1_30).count == 1
        assert report.bucket_total(AgingBucket.OVER_90).amount == Decimal("50.00")
        assert report.current_percentage == Decimal("50.00")
        assert report.overdue_percentage == Decimal("50.00")

    def test_zero_balance_items_skipped(self):
        report = build_aging(
            self._items(), AS_OF, _metadata(ReportType.RECEIVABLES_AGING), _config()
        )
        assert [line.item.reference for line in report.lines] == ["INV-1", "INV-2", "INV-3"]

    def test_days_overdue_never_negative(self):
        report = build_aging(
            self._items(), AS_OF, _metadata(ReportType.RECEIVABLES_AGING), _config()
        )
        assert [line.days_overdue for line in report.lines] == [0, 20, 121]

    def test_all_buckets_present_when_empty(self):
        report = build_aging([], AS_OF, _metadata(ReportType.PAYABLES_AGING), _config())
        assert [b.bucket for b in report.buckets] == list(AgingBucket)
        assert report.total_outstanding == Decimal("0.00")
        assert report.current_percentage == Decimal("0.00")
