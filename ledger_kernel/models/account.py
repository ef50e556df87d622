"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every journal line and the holder of the cached running balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is unique within a company (uq_account_company_code).
    - normal_balance is derived from account_type at creation and never
      changes afterwards.
    - balance equals the natural-sign fold of all posted lines against the
      account.  Only the PostingEngine writes it.
    - Every UPDATE carries the version column in its WHERE clause
      (SQLAlchemy version_id_col), so concurrent balance writes can never
      silently overwrite each other.

Failure modes:
    - StaleDataError from the ORM when a concurrent transaction bumped the
      version first (translated to ConcurrencyConflictError by the engine).
    - IntegrityError on a duplicate (company_id, code) that slipped past the
      registry's pre-check.

Audit relevance:
    Account rows define the structure of the ledger.  Accounts are never
    deleted; deactivation keeps historical lines resolvable.
"""

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


NORMAL_BALANCE_BY_TYPE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}


def normal_balance_for(account_type: AccountType | str) -> NormalBalance:
    """Return the natural balance side for an account type."""
    return NORMAL_BALANCE_BY_TYPE[AccountType(account_type)]


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Account(TrackedBase):
    """
    Chart of accounts entry, scoped to one company.

    Contract:
        (company_id, code) is unique.  account_type and normal_balance are
        fixed once the row exists.  balance is a cache maintained by the
        PostingEngine and is reconstructible from posted history.

    Guarantees:
        - normal_balance is consistent with account_type.
        - version increments on every UPDATE.

    Non-goals:
        - This model does not validate parent ownership or activity before
          deactivation; that is the AccountRegistry's job.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_account_company_code"),
        Index("idx_account_company_type", "company_id", "account_type"),
        Index("idx_account_parent", "parent_id"),
    )

    # Owning company (tenant)
    company_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Account identifier (human-readable code)
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Account name/description
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Account type determines statement placement and natural sign
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(
            AccountType,
            native_enum=False,
            length=20,
            values_callable=_enum_values,
        ),
        nullable=False,
    )

    normal_balance: Mapped[NormalBalance] = mapped_column(
        SAEnum(
            NormalBalance,
            native_enum=False,
            length=10,
            values_callable=_enum_values,
        ),
        nullable=False,
    )

    # Parent account for hierarchical chart of accounts
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    # Cached natural-sign balance (derived; see reconcile)
    balance: Mapped[Decimal] = mapped_column(
        default=Decimal("0.00"),
        nullable=False,
    )

    # Whether the account is active for new postings
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Optimistic lock counter
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        """True iff normal_balance is DEBIT."""
        return self.normal_balance == NormalBalance.DEBIT

    @property
    def is_credit_normal(self) -> bool:
        """True iff normal_balance is CREDIT."""
        return self.normal_balance == NormalBalance.CREDIT
