"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable data structures that cross the kernel boundary: LineSpec
    (caller input), PostedEntry / ReversalResult (posting output) and
    ReconciliationResult (cache verification output).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters invoked only from
    the service layer, while the session that loaded the model is open.

Invariants enforced:
    - Services return DTOs, never live ORM instances, once their session
      is closed.
    - Monetary fields are Decimal, never float.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalEntry as JournalEntryModel


@dataclass(frozen=True)
class LineSpec:
    """
    Caller-supplied description of one journal line item.

    Amounts may arrive as Decimal, int or str; validation normalizes them
    to two-decimal Decimals (see domain/validation.py).
    """

    account_id: UUID
    debit: Any = Decimal("0.00")
    credit: Any = Decimal("0.00")
    description: str | None = None

    @classmethod
    def dr(cls, account_id: UUID, amount: Any, description: str | None = None) -> LineSpec:
        """Debit-only line."""
        return cls(account_id=account_id, debit=amount, description=description)

    @classmethod
    def cr(cls, account_id: UUID, amount: Any, description: str | None = None) -> LineSpec:
        """Credit-only line."""
        return cls(account_id=account_id, credit=amount, description=description)


@dataclass(frozen=True)
class BalanceChange:
    """Effect of one posting on one account's cached balance."""

    account_id: UUID
    account_code: str
    delta: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class PostedEntry:
    """
    Immutable snapshot of a journal entry after it was posted.

    Guarantees:
        total_debit == total_credit (within the configured tolerance).
    """

    entry_id: UUID
    number: str
    entry_date: date
    description: str
    reference: str | None
    total_debit: Decimal
    total_credit: Decimal
    posted_at: datetime
    reversal_of_id: UUID | None = None
    balance_changes: tuple[BalanceChange, ...] = ()

    @classmethod
    def from_model(
        cls,
        model: JournalEntryModel,
        balance_changes: tuple[BalanceChange, ...] = (),
    ) -> PostedEntry:
        """Create from ORM model (boundary converter)."""
        return cls(
            entry_id=model.id,
            number=model.number,
            entry_date=model.entry_date,
            description=model.description,
            reference=model.reference,
            total_debit=model.total_debit,
            total_credit=model.total_credit,
            posted_at=model.posted_at,
            reversal_of_id=model.reversal_of_id,
            balance_changes=balance_changes,
        )

    def change_for(self, account_id: UUID) -> BalanceChange | None:
        for change in self.balance_changes:
            if change.account_id == account_id:
                return change
        return None


@dataclass(frozen=True)
class ReversalResult:
    """Outcome of cancelling a posted entry."""

    original_entry_id: UUID
    original_number: str
    reason: str
    reversal: PostedEntry

    @property
    def reversal_entry_id(self) -> UUID:
        return self.reversal.entry_id


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Cached account balance compared with the balance replayed from history.

    Postconditions: difference == cached - recomputed.
    """

    account_id: UUID
    account_code: str
    cached: Decimal
    recomputed: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached - self.recomputed

    @property
    def is_consistent(self) -> bool:
        return self.difference == Decimal("0")
