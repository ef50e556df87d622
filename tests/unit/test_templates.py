"""
Line builders for invoices, bills and payments.

Every template must produce lines that pass structural validation and
balance exactly.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.chart import DEFAULT_CHART
from ledger_kernel.domain.posting_policy import PostingPolicy
from ledger_kernel.domain.templates import (
    bill_lines,
    customer_payment_lines,
    invoice_lines,
    supplier_payment_lines,
)
from ledger_kernel.domain.validation import validate_line_specs

AR, REV, TAX, AP, EXP, CASH = (uuid4() for _ in range(6))


def _totals(lines):
    normalized = validate_line_specs(lines)
    return (
        sum(line.debit for line in normalized),
        sum(line.credit for line in normalized),
    )


class TestInvoiceLines:
    def test_with_tax(self):
        lines = invoice_lines(AR, REV, TAX, "100.00", "8.25", reference="INV-1")
        assert [line.account_id for line in lines] == [AR, REV, TAX]
        assert lines[0].debit == Decimal("108.25")
        assert lines[1].credit == Decimal("100.00")
        assert lines[2].credit == Decimal("8.25")
        assert lines[0].description == "Invoice INV-1"
        debits, credits = _totals(lines)
        assert debits == credits == Decimal("108.25")

    def test_zero_tax_has_no_tax_line(self):
        lines = invoice_lines(AR, REV, TAX, "100.00")
        assert len(lines) == 2
        assert TAX not in {line.account_id for line in lines}

    def test_no_reference_no_memo(self):
        lines = invoice_lines(AR, REV, TAX, "100.00")
        assert all(line.description is None for line in lines)


class TestBillLines:
    def test_with_tax(self):
        lines = bill_lines(AP, EXP, TAX, "200.00", "10.00", reference="B-7")
        assert [line.account_id for line in lines] == [EXP, TAX, AP]
        assert lines[2].credit == Decimal("210.00")
        assert lines[0].description == "Bill B-7"
        debits, credits = _totals(lines)
        assert debits == credits

    def test_zero_tax(self):
        assert len(bill_lines(AP, EXP, TAX, "200.00")) == 2


class TestPaymentLines:
    def test_customer_payment(self):
        lines = customer_payment_lines(CASH, AR, "50.00", reference="R-1")
        assert lines[0].account_id == CASH and lines[0].debit == "50.00"
        assert lines[1].account_id == AR and lines[1].credit == "50.00"
        assert lines[0].description == "Payment R-1"

    def test_supplier_payment(self):
        lines = supplier_payment_lines(AP, CASH, "75.00")
        debits, credits = _totals(lines)
        assert debits == credits == Decimal("75.00")
        assert lines[1].account_id == CASH


class TestDefaultChart:
    def test_codes_unique(self):
        codes = [spec.code for spec in DEFAULT_CHART]
        assert len(codes) == len(set(codes)) == 9

    def test_types_valid(self):
        assert {spec.account_type for spec in DEFAULT_CHART} == {
            "asset", "liability", "equity", "revenue", "expense",
        }


class TestPostingPolicy:
    def test_defaults(self):
        policy = PostingPolicy()
        assert policy.balance_tolerance == Decimal("0.00")
        assert policy.max_attempts == 3

    def test_negative_tolerance_rejected(self):
        with pytest.raises(ValueError):
            PostingPolicy(balance_tolerance=Decimal("-0.01"))

    def test_sub_cent_tolerance_rejected(self):
        with pytest.raises(ValueError):
            PostingPolicy(balance_tolerance=Decimal("0.001"))

    def test_float_tolerance_rejected(self):
        with pytest.raises(TypeError):
            PostingPolicy(balance_tolerance=0.01)

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValueError):
            PostingPolicy(max_attempts=0)
