"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries -- per-account ledgers with running
    balances, point-in-time balances, activity totals for reports, the
    general ledger and the day book.  Every figure is replayed from posted
    JournalLines; the cached Account.balance is never read here, which is
    what lets reconciliation compare the two.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ (pure helpers) and selectors/base.py.  MUST NOT import from
    services/.

Invariants enforced:
    - Only POSTED entries of the selector's company are visible.
    - Ledger order is entry_date, then entry creation order (seq), then
      line_seq.  The same data always yields the same ledger.
    - Natural sign: debit-normal accounts fold +debit - credit,
      credit-normal accounts fold +credit - debit.

Failure modes:
    - AccountNotFoundError for an account id unknown in this company.
    - Empty results (and zero balances) when nothing is posted.

Audit relevance:
    This is the authoritative read path for balances.  Reports, ledgers and
    cache reconciliation all derive from it.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from ledger_kernel.domain.money import ZERO, natural_delta
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account, AccountType, NormalBalance
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountSummary:
    """Identity and classification of an account."""

    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    parent_id: UUID | None
    is_active: bool

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @classmethod
    def from_model(cls, account: Account) -> "AccountSummary":
        return cls(
            account_id=account.id,
            code=account.code,
            name=account.name,
            account_type=AccountType(account.account_type),
            normal_balance=NormalBalance(account.normal_balance),
            parent_id=account.parent_id,
            is_active=account.is_active,
        )


@dataclass(frozen=True)
class LedgerMovement:
    """One posted line in an account ledger, with the running balance after it."""

    entry_id: UUID
    entry_number: str
    entry_date: date
    description: str
    reference: str | None
    debit: Decimal
    credit: Decimal
    balance: Decimal


@dataclass(frozen=True)
class AccountLedger:
    """Chronological ledger of one account over an optional date window."""

    account: AccountSummary
    start_date: date | None
    end_date: date | None
    opening_balance: Decimal
    movements: tuple[LedgerMovement, ...]
    closing_balance: Decimal
    total_debit: Decimal
    total_credit: Decimal

    @property
    def running_balances(self) -> list[Decimal]:
        return [movement.balance for movement in self.movements]


@dataclass(frozen=True)
class AccountActivity:
    """Posted debit/credit totals of one account over a window."""

    account: AccountSummary
    debit_total: Decimal
    credit_total: Decimal

    @property
    def balance(self) -> Decimal:
        """Natural-sign balance."""
        return natural_delta(
            self.account.is_debit_normal, self.debit_total, self.credit_total
        )

    @property
    def has_activity(self) -> bool:
        return self.debit_total != ZERO or self.credit_total != ZERO


@dataclass(frozen=True)
class DayBookLine:
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    description: str | None


@dataclass(frozen=True)
class DayBookEntry:
    entry_id: UUID
    number: str
    description: str
    reference: str | None
    is_reversal: bool
    lines: tuple[DayBookLine, ...]
    total_debit: Decimal
    total_credit: Decimal


@dataclass(frozen=True)
class DayBook:
    """Every posted entry dated one day, in number order."""

    day: date
    entries: tuple[DayBookEntry, ...]
    total_debit: Decimal
    total_credit: Decimal


class LedgerSelector(BaseSelector):
    """
    Selector for ledger queries.

    Contract:
        Reads posted JournalLines of one company inside the caller's
        session.  Accepts optional date bounds; as_of and end_date are
        inclusive, start_date is inclusive.

    Guarantees:
        - Replayable: repeated calls over unchanged data return equal DTOs.
        - All monetary results are Decimal with two decimal places.

    Non-goals:
        - Does not read or write Account.balance.
        - Does not perform currency conversion.
    """

    def _posted(self) -> tuple:
        return (
            JournalEntry.company_id == self.company_id,
            JournalEntry.status == JournalEntryStatus.POSTED,
        )

    def _get_account(self, account_id: UUID) -> Account:
        account = self.session.execute(
            select(Account).where(
                Account.id == account_id,
                Account.company_id == self.company_id,
            )
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def _sum_lines(self, account_id: UUID, *conditions) -> tuple[Decimal, Decimal]:
        debit_sum, credit_sum = self.session.execute(
            select(func.sum(JournalLine.debit), func.sum(JournalLine.credit))
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalLine.account_id == account_id, *self._posted(), *conditions)
        ).one()
        return debit_sum or ZERO, credit_sum or ZERO

    def balance_as_of(self, account_id: UUID, as_of: date) -> Decimal:
        """Natural-sign balance from posted lines dated on or before as_of."""
        account = self._get_account(account_id)
        debits, credits = self._sum_lines(account.id, JournalEntry.entry_date <= as_of)
        return natural_delta(account.is_debit_normal, debits, credits)

    def recompute_balance(self, account_id: UUID) -> Decimal:
        """Natural-sign balance from the whole posted history."""
        account = self._get_account(account_id)
        debits, credits = self._sum_lines(account.id)
        return natural_delta(account.is_debit_normal, debits, credits)

    def get_account_ledger(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> AccountLedger:
        """
        Chronological ledger of one account.

        Postconditions:
            - opening_balance folds every posted line dated before start_date
              (zero when start_date is None).
            - movements[i].balance == opening_balance + natural sum of
              movements[0..i].
            - closing_balance is the last running balance (or the opening
              balance when there are no movements).
        """
        account = self._get_account(account_id)
        summary = AccountSummary.from_model(account)

        opening = ZERO
        if start_date is not None:
            debits, credits = self._sum_lines(
                account.id, JournalEntry.entry_date < start_date
            )
            opening = natural_delta(summary.is_debit_normal, debits, credits)

        conditions = []
        if start_date is not None:
            conditions.append(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            conditions.append(JournalEntry.entry_date <= end_date)

        rows = self.session.execute(
            select(
                JournalLine.debit,
                JournalLine.credit,
                JournalLine.description.label("line_description"),
                JournalEntry.id.label("entry_id"),
                JournalEntry.number,
                JournalEntry.entry_date,
                JournalEntry.description.label("entry_description"),
                JournalEntry.reference,
            )
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalLine.account_id == account.id, *self._posted(), *conditions)
            .order_by(JournalEntry.entry_date, JournalEntry.seq, JournalLine.line_seq)
        ).all()

        running = opening
        total_debit = ZERO
        total_credit = ZERO
        movements: list[LedgerMovement] = []
        for row in rows:
            running += natural_delta(summary.is_debit_normal, row.debit, row.credit)
            total_debit += row.debit
            total_credit += row.credit
            movements.append(
                LedgerMovement(
                    entry_id=row.entry_id,
                    entry_number=row.number,
                    entry_date=row.entry_date,
                    description=row.line_description or row.entry_description,
                    reference=row.reference,
                    debit=row.debit,
                    credit=row.credit,
                    balance=running,
                )
            )

        return AccountLedger(
            account=summary,
            start_date=start_date,
            end_date=end_date,
            opening_balance=opening,
            movements=tuple(movements),
            closing_balance=running,
            total_debit=total_debit,
            total_credit=total_credit,
        )

    def balances(
        self,
        as_of: date | None = None,
        start_date: date | None = None,
        account_type: AccountType | None = None,
    ) -> list[AccountActivity]:
        """
        Posted activity per account, ordered by account code.

        Every account of the company appears (zero totals when idle);
        reports decide what to show.
        """
        conditions = []
        if as_of is not None:
            conditions.append(JournalEntry.entry_date <= as_of)
        if start_date is not None:
            conditions.append(JournalEntry.entry_date >= start_date)

        totals = {
            row.account_id: (row.debit_total or ZERO, row.credit_total or ZERO)
            for row in self.session.execute(
                select(
                    JournalLine.account_id,
                    func.sum(JournalLine.debit).label("debit_total"),
                    func.sum(JournalLine.credit).label("credit_total"),
                )
                .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
                .where(*self._posted(), *conditions)
                .group_by(JournalLine.account_id)
            )
        }

        account_query = select(Account).where(Account.company_id == self.company_id)
        if account_type is not None:
            account_query = account_query.where(Account.account_type == account_type)
        accounts = self.session.execute(account_query.order_by(Account.code)).scalars()

        result = []
        for account in accounts:
            debits, credits = totals.get(account.id, (ZERO, ZERO))
            result.append(
                AccountActivity(
                    account=AccountSummary.from_model(account),
                    debit_total=debits,
                    credit_total=credits,
                )
            )
        return result

    def total_debits_credits(self, as_of: date | None = None) -> tuple[Decimal, Decimal]:
        """Ledger-wide posted (debits, credits)."""
        query = (
            select(func.sum(JournalLine.debit), func.sum(JournalLine.credit))
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(*self._posted())
        )
        if as_of is not None:
            query = query.where(JournalEntry.entry_date <= as_of)
        debits, credits = self.session.execute(query).one()
        return debits or ZERO, credits or ZERO

    def general_ledger(
        self,
        start_date: date | None = None,
        end_date: date | None = None,
        account_type: AccountType | None = None,
    ) -> list[AccountLedger]:
        """One AccountLedger per account with movements in the window, by code."""
        conditions = []
        if start_date is not None:
            conditions.append(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            conditions.append(JournalEntry.entry_date <= end_date)

        query = (
            select(Account.id)
            .join(JournalLine, JournalLine.account_id == Account.id)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(Account.company_id == self.company_id, *self._posted(), *conditions)
            .group_by(Account.id, Account.code)
            .order_by(Account.code)
        )
        if account_type is not None:
            query = query.where(Account.account_type == account_type)

        return [
            self.get_account_ledger(account_id, start_date, end_date)
            for account_id in self.session.execute(query).scalars()
        ]

    def day_book(self, day: date) -> DayBook:
        """Every posted entry dated ``day`` with its lines, by entry number."""
        entries = self.session.execute(
            select(JournalEntry)
            .where(*self._posted(), JournalEntry.entry_date == day)
            .order_by(JournalEntry.seq)
            .options(selectinload(JournalEntry.lines).selectinload(JournalLine.account))
        ).scalars().all()

        book_entries = []
        for entry in entries:
            lines = tuple(
                DayBookLine(
                    account_code=line.account.code,
                    account_name=line.account.name,
                    debit=line.debit,
                    credit=line.credit,
                    description=line.description,
                )
                for line in entry.lines
            )
            book_entries.append(
                DayBookEntry(
                    entry_id=entry.id,
                    number=entry.number,
                    description=entry.description,
                    reference=entry.reference,
                    is_reversal=entry.is_reversal,
                    lines=lines,
                    total_debit=entry.total_debit,
                    total_credit=entry.total_credit,
                )
            )

        return DayBook(
            day=day,
            entries=tuple(book_entries),
            total_debit=sum((e.total_debit for e in book_entries), ZERO),
            total_credit=sum((e.total_credit for e in book_entries), ZERO),
        )
