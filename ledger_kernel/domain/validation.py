"""
Structural validation of journal line items.

Pure checks with no I/O, run before anything touches the session.  Balance
is NOT checked here: drafts may be unbalanced, and the PostingEngine checks
debits == credits at posting time.
"""

from __future__ import annotations

from collections.abc import Sequence

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.domain.money import (
    ZERO,
    has_sub_cent_precision,
    quantize,
    to_decimal,
)
from ledger_kernel.exceptions import (
    InsufficientLineItemsError,
    InvalidAmountError,
    ValidationError,
)

MIN_LINE_ITEMS = 2


def _validate_amount(value, line_index: int, side: str):
    try:
        amount = to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(line_index, f"{side} {exc}") from exc
    if amount < ZERO:
        raise InvalidAmountError(line_index, f"{side} is negative")
    if has_sub_cent_precision(amount):
        raise InvalidAmountError(line_index, f"{side} has more than two decimal places")
    return quantize(amount)


def validate_line_specs(lines: Sequence[LineSpec]) -> tuple[LineSpec, ...]:
    """
    Validate and normalize line items for a journal entry.

    Postconditions:
        Returns new LineSpecs with Decimal amounts quantized to cents, in
        the caller's order (which becomes line_seq).

    Raises:
        InsufficientLineItemsError: fewer than two lines.
        InvalidAmountError: negative, sub-cent, non-numeric or all-zero line.
        ValidationError: line without an account.
    """
    if lines is None or len(lines) < MIN_LINE_ITEMS:
        raise InsufficientLineItemsError(0 if lines is None else len(lines), MIN_LINE_ITEMS)

    normalized: list[LineSpec] = []
    for index, line in enumerate(lines):
        if line.account_id is None:
            raise ValidationError(f"Line {index} has no account")
        debit = _validate_amount(line.debit, index, "debit")
        credit = _validate_amount(line.credit, index, "credit")
        if debit == ZERO and credit == ZERO:
            raise InvalidAmountError(index, "debit and credit are both zero")
        normalized.append(
            LineSpec(
                account_id=line.account_id,
                debit=debit,
                credit=credit,
                description=line.description,
            )
        )
    return tuple(normalized)
