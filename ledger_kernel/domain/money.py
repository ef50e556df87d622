"""
Money rules for the ledger: two-decimal amounts and the natural sign.

Pure functions, no I/O.  Amounts are ``Decimal`` with exactly two decimal
places; anything more precise is refused instead of being rounded, because
rounding would let two "equal" entries disagree in the stored minor units.

Natural sign:
    debit-normal accounts (ASSET, EXPENSE):      +debit - credit
    credit-normal accounts (LIABILITY, EQUITY,
    REVENUE):                                    +credit - debit
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Convert an int/str/Decimal to Decimal.

    Raises:
        TypeError: for floats (binary floats cannot represent cents) and
            other unsupported types.
        ValueError: for unparseable or non-finite values.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"amount must be Decimal, int or str, not {type(value).__name__}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, str)):
        try:
            amount = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"not a number: {value!r}") from exc
    else:
        raise TypeError(f"amount must be Decimal, int or str, not {type(value).__name__}")
    if not amount.is_finite():
        raise ValueError(f"not a finite amount: {value!r}")
    return amount


def has_sub_cent_precision(amount: Decimal) -> bool:
    """True iff amount cannot be represented in whole minor units."""
    return amount != amount.quantize(CENT)


def quantize(amount: Decimal) -> Decimal:
    """Normalize an already-valid amount to two decimal places."""
    return amount.quantize(CENT)


def natural_delta(debit_normal: bool, debit: Decimal, credit: Decimal) -> Decimal:
    """
    Signed change a (debit, credit) pair applies to an account balance.

    Preconditions: debit and credit are non-negative two-decimal amounts.
    Postconditions: positive result increases the account's natural balance.
    """
    if debit_normal:
        return debit - credit
    return credit - debit


def within_tolerance(debits: Decimal, credits: Decimal, tolerance: Decimal) -> bool:
    """True iff |debits - credits| <= tolerance."""
    return abs(debits - credits) <= tolerance
