"""
AccountRegistry -- the company's chart of accounts.

Responsibility:
    Creates, looks up, deactivates and reactivates accounts; answers balance
    questions (live cache, point in time, hierarchical rollup); verifies the
    cached balance against posted history; seeds the default chart.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes, never commits.
    Balance mutation is NOT here: only the PostingEngine writes
    Account.balance.

Invariants enforced:
    - (company_id, code) unique; parents must live in the same company.
    - normal_balance is derived from account_type at creation.
    - An account referenced by any line item, or by child accounts, is
      never deactivated.
    - Accounts are never deleted.

Failure modes:
    - ValidationError: blank code/name or unknown account type.
    - DuplicateCodeError / InvalidParentError on creation.
    - AccountHasActivityError / AccountHasChildrenError on deactivation.
    - AccountNotFoundError for ids unknown in this company.

Audit relevance:
    Creation, deactivation, reactivation and detected balance drift are
    logged with account_id and code.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.chart import DEFAULT_CHART
from ledger_kernel.domain.dtos import ReconciliationResult
from ledger_kernel.domain.money import ZERO
from ledger_kernel.exceptions import (
    AccountHasActivityError,
    AccountHasChildrenError,
    AccountNotFoundError,
    DuplicateCodeError,
    InvalidParentError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountType, normal_balance_for
from ledger_kernel.models.journal import JournalLine
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_registry")


def _is_code_clash(exc: IntegrityError) -> bool:
    # PostgreSQL names the constraint; SQLite names the columns.
    message = str(exc.orig)
    return "uq_account_company_code" in message or "accounts.code" in message


class AccountRegistry(BaseService):
    """
    Company-scoped chart of accounts.

    Contract:
        Every method operates inside the caller's session and only sees
        accounts of ``company_id``.

    Guarantees:
        - Lookups of another company's account raise AccountNotFoundError,
          exactly like unknown ids.
        - deactivate_account is idempotent on an inactive account.

    Non-goals:
        - Does NOT post or change balances (PostingEngine).
        - Does NOT repair drift (PostingEngine.repair_balance).
    """

    def __init__(self, session: Session, company_id: UUID):
        super().__init__(session, company_id)
        self._ledger = LedgerSelector(session, company_id)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        parent_id: UUID | None = None,
        *,
        actor_id: UUID,
    ) -> Account:
        """
        Create an account in this company's chart.

        Raises:
            ValidationError: blank code/name or unknown account type.
            DuplicateCodeError: code already used in this company.
                The session is rolled back when the clash is only caught by
                the unique constraint at flush.
            InvalidParentError: parent missing or in another company.
        """
        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValidationError("Account code is required")
        if not name:
            raise ValidationError("Account name is required")
        try:
            account_type = AccountType(account_type)
        except ValueError:
            raise ValidationError(f"Unknown account type: {account_type}") from None

        if self._find_by_code(code) is not None:
            raise DuplicateCodeError(code)

        if parent_id is not None and self._find(parent_id) is None:
            raise InvalidParentError(str(parent_id))

        account = Account(
            company_id=self.company_id,
            code=code,
            name=name,
            account_type=account_type,
            normal_balance=normal_balance_for(account_type),
            parent_id=parent_id,
            balance=ZERO,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(account)
        try:
            self.session.flush()
        except IntegrityError as exc:
            # Lost a race with a concurrent insert of the same code.
            self.session.rollback()
            if not _is_code_clash(exc):
                raise
            logger.warning("account_code_conflict", extra={"account_code": code})
            raise DuplicateCodeError(code) from exc

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "account_type": account_type.value,
            },
        )
        return account

    def seed_default_chart(self, *, actor_id: UUID) -> list[Account]:
        """
        Create the default chart, skipping codes already in use.

        Returns:
            The accounts created by this call (empty when fully seeded).
        """
        created = []
        for spec in DEFAULT_CHART:
            if self._find_by_code(spec.code) is not None:
                continue
            created.append(
                self.create_account(
                    spec.code, spec.name, spec.account_type, actor_id=actor_id
                )
            )
        logger.info(
            "default_chart_seeded",
            extra={"created_count": len(created)},
        )
        return created

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def deactivate_account(self, account_id: UUID, actor_id: UUID | None = None) -> Account:
        """
        Deactivate an account so it can no longer be posted to.

        Raises:
            AccountHasActivityError: any line item references the account.
            AccountHasChildrenError: other accounts have it as parent.
        """
        account = self.get_account(account_id)
        if not account.is_active:
            return account

        line_count = self.session.execute(
            select(func.count(JournalLine.id)).where(
                JournalLine.account_id == account.id
            )
        ).scalar_one()
        if line_count:
            raise AccountHasActivityError(str(account_id), line_count)

        child_count = self.session.execute(
            select(func.count(Account.id)).where(
                Account.parent_id == account.id,
                Account.company_id == self.company_id,
            )
        ).scalar_one()
        if child_count:
            raise AccountHasChildrenError(str(account_id), child_count)

        account.is_active = False
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_deactivated",
            extra={"account_id": str(account.id), "account_code": account.code},
        )
        return account

    def reactivate_account(self, account_id: UUID, actor_id: UUID | None = None) -> Account:
        """Make an inactive account postable again (idempotent)."""
        account = self.get_account(account_id)
        if account.is_active:
            return account

        account.is_active = True
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_reactivated",
            extra={"account_id": str(account.id), "account_code": account.code},
        )
        return account

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _find(self, account_id: UUID) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.id == account_id,
                Account.company_id == self.company_id,
            )
        ).scalar_one_or_none()

    def _find_by_code(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.code == code,
                Account.company_id == self.company_id,
            )
        ).scalar_one_or_none()

    def get_account(self, account_id: UUID) -> Account:
        account = self._find(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def get_by_code(self, code: str) -> Account:
        account = self._find_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        include_inactive: bool = False,
    ) -> list[Account]:
        """Accounts of this company ordered by code."""
        query = select(Account).where(Account.company_id == self.company_id)
        if account_type is not None:
            query = query.where(Account.account_type == AccountType(account_type))
        if not include_inactive:
            query = query.where(Account.is_active.is_(True))
        return list(self.session.execute(query.order_by(Account.code)).scalars())

    def children(self, account_id: UUID) -> list[Account]:
        """Direct children of an account, ordered by code."""
        parent = self.get_account(account_id)
        return list(
            self.session.execute(
                select(Account)
                .where(
                    Account.parent_id == parent.id,
                    Account.company_id == self.company_id,
                )
                .order_by(Account.code)
            ).scalars()
        )

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def get_balance(self, account_id: UUID, as_of: date | None = None) -> Decimal:
        """
        Natural-sign balance of an account.

        as_of=None returns the live cache; a date replays posted history
        dated on or before it.
        """
        if as_of is None:
            return self.get_account(account_id).balance
        return self._ledger.balance_as_of(account_id, as_of)

    def rollup_balance(self, account_id: UUID, as_of: date | None = None) -> Decimal:
        """
        Balance of an account plus all of its descendants.

        Each descendant's balance is expressed in the root account's natural
        sign: a descendant with the opposite normal side subtracts.
        """
        root = self.get_account(account_id)
        total = ZERO
        pending = [root]
        seen: set[UUID] = set()
        while pending:
            account = pending.pop()
            if account.id in seen:
                continue
            seen.add(account.id)
            balance = self.get_balance(account.id, as_of)
            if account.normal_balance == root.normal_balance:
                total += balance
            else:
                total -= balance
            pending.extend(self.children(account.id))
        return total

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self, account_id: UUID) -> ReconciliationResult:
        """
        Compare the cached balance with the balance replayed from history.

        Logs ``balance_drift_detected`` at WARNING when they differ.
        """
        account = self.get_account(account_id)
        result = ReconciliationResult(
            account_id=account.id,
            account_code=account.code,
            cached=account.balance,
            recomputed=self._ledger.recompute_balance(account.id),
        )
        if not result.is_consistent:
            logger.warning(
                "balance_drift_detected",
                extra={
                    "account_id": str(account.id),
                    "account_code": account.code,
                    "cached": str(result.cached),
                    "recomputed": str(result.recomputed),
                    "difference": str(result.difference),
                },
            )
        return result

    def reconcile_all(self) -> list[ReconciliationResult]:
        """One reconciliation result per account (active or not), by code."""
        return [
            self.reconcile(account.id)
            for account in self.list_accounts(include_inactive=True)
        ]
