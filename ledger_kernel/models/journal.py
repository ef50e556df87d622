"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth in this system.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - number is unique within a company (uq_journal_company_number) and is
      allocated from the company's sequence counter, never max()+1.
    - POSTED implies total_debit == total_credit and both equal the line
      sums (checked by the PostingEngine; is_balanced is the read-side view).
    - An entry is reversed at most once (UNIQUE on reversal_of_id).
    - Posted entries and their lines are immutable (ORM listeners in
      db/immutability.py).

Failure modes:
    - IntegrityError on a second reversal of the same entry.
    - ImmutabilityViolationError on UPDATE/DELETE of a posted entry or line.
    - StaleDataError when two transactions post the same draft concurrently.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    Account balances, ledgers and reports all derive from these rows.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntryStatus(str, Enum):
    """Persisted lifecycle status of a journal entry.

    Contract: DRAFT -> POSTED is the only persisted transition.  "Reversed"
    is derived from the existence of a posted reversing entry.
    """

    DRAFT = "draft"
    POSTED = "posted"


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the atomic unit of double-entry accounting.

    Contract:
        Owns two or more JournalLines in line_seq order.  Once status is
        POSTED the row and its lines never change again; cancellation is
        expressed by a separate entry whose reversal_of_id points here.

    Guarantees:
        - total_debit/total_credit cache the line sums.
        - version increments on every UPDATE, so a draft can only be posted
          by one transaction.

    Non-goals:
        - This model does NOT enforce balance at the ORM level; enforcement
          lives in the PostingEngine.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("company_id", "number", name="uq_journal_company_number"),
        UniqueConstraint("company_id", "seq", name="uq_journal_company_seq"),
        UniqueConstraint("reversal_of_id", name="uq_journal_reversal_of"),
        Index("idx_journal_company_date", "company_id", "entry_date"),
        Index("idx_journal_company_status", "company_id", "status"),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Per-company creation order, allocated from the sequence counter
    seq: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
    )

    # Human-readable number derived from seq, e.g. JE-000042
    number: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    # Accounting date
    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    # Free-text business reference (invoice number, bill number, ...)
    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    status: Mapped[JournalEntryStatus] = mapped_column(
        SAEnum(
            JournalEntryStatus,
            native_enum=False,
            length=10,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
        ),
        nullable=False,
        default=JournalEntryStatus.DRAFT,
    )

    total_debit: Mapped[Decimal] = mapped_column(
        default=Decimal("0.00"),
        nullable=False,
    )

    total_credit: Mapped[Decimal] = mapped_column(
        default=Decimal("0.00"),
        nullable=False,
    )

    # When the entry was posted
    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    posted_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    # Set on a reversing entry: the entry it cancels
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    cancel_reason: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_seq",
        lazy="selectin",
    )

    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side="JournalEntry.id",
        foreign_keys=[reversal_of_id],
    )

    reversed_by: Mapped["JournalEntry | None"] = relationship(
        foreign_keys=[reversal_of_id],
        uselist=False,
        viewonly=True,
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.number} status={self.status.value}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_reversal(self) -> bool:
        """True iff this entry cancels another entry."""
        return self.reversal_of_id is not None

    @property
    def is_reversed(self) -> bool:
        """True iff a posted reversing entry points at this entry."""
        reversal = self.reversed_by
        return reversal is not None and reversal.is_posted

    @property
    def line_debits(self) -> Decimal:
        """Sum of line debits (recomputed, not the cache)."""
        return sum((line.debit for line in self.lines), Decimal("0.00"))

    @property
    def line_credits(self) -> Decimal:
        """Sum of line credits (recomputed, not the cache)."""
        return sum((line.credit for line in self.lines), Decimal("0.00"))

    @property
    def is_balanced(self) -> bool:
        """Read-side convenience: line debits equal line credits."""
        return self.line_debits == self.line_credits


class JournalLine(TrackedBase):
    """
    One line item within a journal entry.

    Contract:
        References exactly one Account.  debit and credit are both >= 0 and
        not both zero; either side may be nonzero (balance is checked at the
        entry level only).

    Guarantees:
        - line_seq gives deterministic ordering within the entry.

    Non-goals:
        - This model does not validate account existence or activity; that
          is enforced by the PostingEngine at posting time.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit: Mapped[Decimal] = mapped_column(
        default=Decimal("0.00"),
        nullable=False,
    )

    credit: Mapped[Decimal] = mapped_column(
        default=Decimal("0.00"),
        nullable=False,
    )

    # Line-level memo
    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Relationships
    entry: Mapped["JournalEntry"] = relationship(
        back_populates="lines",
    )

    account: Mapped["Account"] = relationship(
        back_populates="journal_lines",
    )

    def __repr__(self) -> str:
        return f"<JournalLine #{self.line_seq} Dr {self.debit} Cr {self.credit}>"
