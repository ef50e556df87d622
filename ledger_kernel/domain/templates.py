"""
Line builders for the business documents that post to the ledger.

Responsibility:
    Turn an invoice, bill or payment into balanced LineSpecs.  The calling
    workflow resolves account ids (usually from the default chart codes in
    domain/chart.py) and hands the lines to PostingEngine.record().

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Entries produced:
    invoice           Dr Receivable total / Cr Revenue net / Cr Tax Payable tax
    bill              Dr Expense|Inventory net / Dr Tax Payable tax / Cr Payable total
    customer payment  Dr Cash / Cr Receivable
    supplier payment  Dr Payable / Cr Cash

A zero tax amount produces no tax line.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.domain.money import ZERO, to_decimal


def invoice_lines(
    receivable_id: UUID,
    revenue_id: UUID,
    tax_payable_id: UUID,
    net_amount: Any,
    tax_amount: Any = ZERO,
    reference: str | None = None,
) -> tuple[LineSpec, ...]:
    """Lines for a customer invoice (sale on credit)."""
    net = to_decimal(net_amount)
    tax = to_decimal(tax_amount)
    memo = f"Invoice {reference}" if reference else None

    lines = [
        LineSpec.dr(receivable_id, net + tax, memo),
        LineSpec.cr(revenue_id, net, memo),
    ]
    if tax != ZERO:
        lines.append(LineSpec.cr(tax_payable_id, tax, memo))
    return tuple(lines)


def bill_lines(
    payable_id: UUID,
    expense_id: UUID,
    tax_payable_id: UUID,
    net_amount: Any,
    tax_amount: Any = ZERO,
    reference: str | None = None,
) -> tuple[LineSpec, ...]:
    """
    Lines for a supplier bill.

    expense_id is the expense account for services or the inventory
    account for stock purchases.
    """
    net = to_decimal(net_amount)
    tax = to_decimal(tax_amount)
    memo = f"Bill {reference}" if reference else None

    lines = [LineSpec.dr(expense_id, net, memo)]
    if tax != ZERO:
        lines.append(LineSpec.dr(tax_payable_id, tax, memo))
    lines.append(LineSpec.cr(payable_id, net + tax, memo))
    return tuple(lines)


def customer_payment_lines(
    cash_id: UUID,
    receivable_id: UUID,
    amount: Any,
    reference: str | None = None,
) -> tuple[LineSpec, ...]:
    """Lines for cash received against a receivable."""
    memo = f"Payment {reference}" if reference else None
    return (
        LineSpec.dr(cash_id, amount, memo),
        LineSpec.cr(receivable_id, amount, memo),
    )


def supplier_payment_lines(
    payable_id: UUID,
    cash_id: UUID,
    amount: Any,
    reference: str | None = None,
) -> tuple[LineSpec, ...]:
    """Lines for cash paid against a payable."""
    memo = f"Payment {reference}" if reference else None
    return (
        LineSpec.dr(payable_id, amount, memo),
        LineSpec.cr(cash_id, amount, memo),
    )
