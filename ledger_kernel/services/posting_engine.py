"""
PostingEngine -- the only writer of posted history and cached balances.

Responsibility:
    Posts drafts, records entries in one step (draft + post), cancels
    posted entries with reversing entries, and repairs cached balances.
    Owns the transaction: each operation runs in its own session from the
    injected sessionmaker and commits or rolls back as a unit.

Architecture position:
    Kernel > Services -- imperative shell, transaction boundary.
    Composes JournalStore (drafts), LedgerSelector (history replay) and
    the domain state machine.

Invariants enforced:
    - Posted entries balance: |debits - credits| <= policy tolerance
      (exact by default).
    - Every account's balance moves by exactly the natural-sign delta of
      the posted lines, in the same transaction that marks the entry POSTED.
    - All-or-nothing: any failure rolls back the whole attempt; the entry
      stays DRAFT and no balance changes persist.
    - Lost updates are impossible: accounts are locked in ascending id order
      (SELECT ... FOR UPDATE on PostgreSQL) and every balance write is
      guarded by the account version column on all backends.
    - Posted history is append-only: cancellation posts a reversing entry
      and never mutates the original.

Failure modes:
    - EntryNotFoundError, AlreadyPostedError, UnbalancedEntryError,
      UnknownAccountError, EntryNotPostedError, EntryAlreadyReversedError,
      EntryHasDependentsError: raised immediately, nothing persists.
    - ConcurrencyConflictError: a version conflict or lock timeout on every
      one of ``max_attempts`` attempts.

Audit relevance:
    posting_started / posting_completed / posting_failed events carry the
    entry id and number, totals, attempt count and duration, inside a
    log context bound to company, actor, operation and attempt.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from datetime import date
from decimal import Decimal
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    BalanceChange,
    LineSpec,
    PostedEntry,
    ReconciliationResult,
    ReversalResult,
)
from ledger_kernel.domain.money import ZERO, natural_delta, within_tolerance
from ledger_kernel.domain.posting_policy import PostingPolicy
from ledger_kernel.domain.state_machine import (
    EntryAction,
    effective_state,
    ensure_transition,
)
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    ConcurrencyConflictError,
    EntryAlreadyReversedError,
    EntryHasDependentsError,
    LedgerError,
    UnbalancedEntryError,
    UnknownAccountError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger, log_context
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.journal_store import JournalStore

logger = get_logger("services.posting_engine")

T = TypeVar("T")

DependentsProbe = Callable[[JournalEntry], Iterable[str]]


def _is_lock_conflict(exc: OperationalError) -> bool:
    """True for lock waits that gave up (SQLite busy, PostgreSQL deadlock)."""
    message = str(exc.orig).lower() if exc.orig is not None else str(exc).lower()
    return "deadlock" in message or "locked" in message


class PostingEngine:
    """
    Company-scoped posting service with its own transaction boundary.

    Contract:
        Built from a sessionmaker.  Every public operation opens a session,
        does its work, commits on success and rolls back on failure.
        Version conflicts are retried up to ``policy.max_attempts`` times
        with a linear backoff; every other error surfaces immediately.

    Guarantees:
        - Returns frozen DTOs (PostedEntry, ReversalResult,
          ReconciliationResult), never ORM instances of a closed session.
        - posted_at comes from the injected Clock.

    Non-goals:
        - Does NOT participate in a caller's transaction.
        - Does NOT decide which business documents depend on an entry; the
          caller injects ``dependents_probe``.

    Usage:
        engine = PostingEngine(session_factory, company_id)
        posted = engine.post(entry_id, actor_id=user_id)
        result = engine.cancel(entry_id, "duplicate invoice", actor_id=user_id)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        company_id: UUID,
        clock: Clock | None = None,
        policy: PostingPolicy | None = None,
        dependents_probe: DependentsProbe | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._session_factory = session_factory
        self.company_id = company_id
        self._clock = clock or SystemClock()
        self._policy = policy or PostingPolicy()
        self._dependents_probe = dependents_probe
        self._sleep = sleep

    @property
    def policy(self) -> PostingPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def post(self, entry_id: UUID, *, actor_id: UUID) -> PostedEntry:
        """
        Post a DRAFT entry.

        Raises:
            EntryNotFoundError: unknown in this company.
            AlreadyPostedError: the entry is already POSTED.
            UnbalancedEntryError: debits and credits differ beyond tolerance.
            UnknownAccountError: a line's account is missing or inactive.
            ConcurrencyConflictError: retries exhausted.
        """

        def work(session: Session) -> PostedEntry:
            entry = JournalStore(session, self.company_id).get_entry_for_update(entry_id)
            ensure_transition(
                str(entry_id),
                effective_state(entry.status, entry.is_reversed),
                EntryAction.POST,
            )
            return self._apply_posting(session, entry, actor_id)

        return self._run("post", work, actor_id=actor_id, entry_id=entry_id)

    def record(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        reference: str | None = None,
        *,
        actor_id: UUID,
    ) -> PostedEntry:
        """
        Create and post an entry in one unit of work.

        Nothing persists on failure, not even the draft or its number.
        """

        def work(session: Session) -> PostedEntry:
            entry = JournalStore(session, self.company_id).create_draft(
                entry_date, description, lines, reference, actor_id=actor_id
            )
            return self._apply_posting(session, entry, actor_id)

        return self._run("record", work, actor_id=actor_id)

    def cancel(self, entry_id: UUID, reason: str, *, actor_id: UUID) -> ReversalResult:
        """
        Cancel a POSTED entry by posting its reversing entry.

        Raises:
            ValidationError: blank reason.
            EntryNotFoundError: unknown in this company.
            EntryNotPostedError: the entry is a DRAFT.
            EntryAlreadyReversedError: already reversed, or itself a reversal.
            EntryHasDependentsError: the dependents probe reported records.
        """
        if not reason or not reason.strip():
            raise ValidationError("Cancellation reason is required")
        reason = reason.strip()

        def work(session: Session) -> ReversalResult:
            store = JournalStore(session, self.company_id)
            original = store.get_entry_for_update(entry_id)
            if original.is_reversal:
                raise EntryAlreadyReversedError(
                    str(entry_id), "entry is itself a reversal"
                )
            ensure_transition(
                str(entry_id),
                effective_state(original.status, original.is_reversed),
                EntryAction.CANCEL,
            )
            if self._dependents_probe is not None:
                dependents = tuple(self._dependents_probe(original))
                if dependents:
                    raise EntryHasDependentsError(str(entry_id), dependents)

            reversal = store.create_reversal_draft(original, reason, actor_id=actor_id)
            posted = self._apply_posting(session, reversal, actor_id)
            logger.info(
                "entry_cancelled",
                extra={
                    "original_entry_number": original.number,
                    "reversal_entry_id": str(posted.entry_id),
                    "reversal_entry_number": posted.number,
                    "reason": reason,
                },
            )
            return ReversalResult(
                original_entry_id=original.id,
                original_number=original.number,
                reason=reason,
                reversal=posted,
            )

        # A concurrent cancel of the same entry surfaces as a unique
        # violation on reversal_of_id; the retry then sees the reversal.
        return self._run(
            "cancel",
            work,
            actor_id=actor_id,
            entry_id=entry_id,
            retry_on_integrity_error=True,
        )

    def repair_balance(self, account_id: UUID, *, actor_id: UUID) -> ReconciliationResult:
        """
        Overwrite an account's cached balance with the replayed history.

        Returns the reconciliation seen BEFORE the repair.
        """

        def work(session: Session) -> ReconciliationResult:
            account = self._lock_accounts(session, [account_id], missing=AccountNotFoundError)[0]
            result = ReconciliationResult(
                account_id=account.id,
                account_code=account.code,
                cached=account.balance,
                recomputed=LedgerSelector(session, self.company_id).recompute_balance(
                    account.id
                ),
            )
            if not result.is_consistent:
                account.balance = result.recomputed
                account.updated_by_id = actor_id
                session.flush()
                logger.warning(
                    "balance_repaired",
                    extra={
                        "account_id": str(account.id),
                        "account_code": account.code,
                        "cached": str(result.cached),
                        "recomputed": str(result.recomputed),
                    },
                )
            return result

        return self._run("repair_balance", work, actor_id=actor_id)

    # ------------------------------------------------------------------
    # Posting core
    # ------------------------------------------------------------------

    def _apply_posting(
        self,
        session: Session,
        entry: JournalEntry,
        actor_id: UUID,
    ) -> PostedEntry:
        """Validate balance and accounts, then flip status and move balances."""
        debits = entry.line_debits
        credits = entry.line_credits
        if not within_tolerance(debits, credits, self._policy.balance_tolerance):
            raise UnbalancedEntryError(str(debits), str(credits), entry_id=str(entry.id))

        deltas: dict[UUID, Decimal] = {}
        raw: dict[UUID, list[tuple[Decimal, Decimal]]] = {}
        for line in entry.lines:
            raw.setdefault(line.account_id, []).append((line.debit, line.credit))

        accounts = self._lock_accounts(session, list(raw))
        for account in accounts:
            if not account.is_active:
                raise UnknownAccountError(str(account.id), "inactive")
            deltas[account.id] = sum(
                (
                    natural_delta(account.is_debit_normal, debit, credit)
                    for debit, credit in raw[account.id]
                ),
                ZERO,
            )

        entry.status = JournalEntryStatus.POSTED
        entry.posted_at = self._clock.now()
        entry.posted_by_id = actor_id
        entry.total_debit = debits
        entry.total_credit = credits
        entry.updated_by_id = actor_id

        changes = []
        for account in accounts:
            delta = deltas[account.id]
            if delta != ZERO:
                account.balance = account.balance + delta
                account.updated_by_id = actor_id
            changes.append(
                BalanceChange(
                    account_id=account.id,
                    account_code=account.code,
                    delta=delta,
                    balance_after=account.balance,
                )
            )
        session.flush()

        return PostedEntry.from_model(entry, tuple(changes))

    def _lock_accounts(
        self,
        session: Session,
        account_ids: list[UUID],
        missing: type[LedgerError] = UnknownAccountError,
    ) -> list[Account]:
        """
        Load accounts of this company in ascending id order, row-locked.

        populate_existing makes every attempt see the committed balance and
        version, not a stale identity-map copy.
        """
        accounts = list(
            session.execute(
                select(Account)
                .where(
                    Account.id.in_(account_ids),
                    Account.company_id == self.company_id,
                )
                .order_by(Account.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            ).scalars()
        )
        found = {account.id for account in accounts}
        for account_id in sorted(account_ids, key=str):
            if account_id not in found:
                raise missing(str(account_id))
        return accounts

    # ------------------------------------------------------------------
    # Transaction and retry
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        work: Callable[[Session], T],
        *,
        actor_id: UUID,
        entry_id: UUID | None = None,
        retry_on_integrity_error: bool = False,
    ) -> T:
        retryable: tuple[type[Exception], ...] = (StaleDataError, OperationalError)
        if retry_on_integrity_error:
            retryable = retryable + (IntegrityError,)

        with log_context(
            correlation_id=uuid4(),
            company_id=self.company_id,
            actor_id=actor_id,
            entry_id=entry_id,
            operation=operation,
        ):
            logger.info("posting_started")
            t0 = time.monotonic()
            max_attempts = self._policy.max_attempts

            for attempt in range(1, max_attempts + 1):
                with log_context(attempt=attempt):
                    session = self._session_factory()
                    try:
                        result = work(session)
                        session.commit()
                    except retryable as exc:
                        session.rollback()
                        if isinstance(exc, OperationalError) and not _is_lock_conflict(exc):
                            raise
                        logger.warning(
                            "posting_conflict",
                            extra={
                                "max_attempts": max_attempts,
                                "error_type": type(exc).__name__,
                            },
                        )
                        if attempt == max_attempts:
                            raise ConcurrencyConflictError(
                                "JournalEntry" if entry_id is not None else "Account",
                                str(entry_id) if entry_id is not None else "",
                                attempts=attempt,
                            ) from exc
                        self._sleep(self._policy.retry_backoff_seconds * attempt)
                        continue
                    except LedgerError as exc:
                        session.rollback()
                        logger.warning("posting_failed", extra={"error_code": exc.code})
                        raise
                    except Exception:
                        session.rollback()
                        logger.error("posting_failed", exc_info=True)
                        raise
                    finally:
                        session.close()

                    duration_ms = round((time.monotonic() - t0) * 1000, 2)
                    logger.info("posting_completed", extra={"duration_ms": duration_ms})
                    return result

            raise AssertionError("unreachable")  # pragma: no cover
