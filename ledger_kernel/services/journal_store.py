"""
JournalStore -- creation and draft-only mutation of journal entries.

Responsibility:
    Creates DRAFT entries with two or more validated line items, allocates
    their numbers, edits and deletes drafts, and loads entries for the
    PostingEngine.  Balance is NOT checked here; drafts may be unbalanced
    until someone tries to post them.

Architecture position:
    Kernel > Services -- imperative shell.  Flushes, never commits.
    Uses SequenceService for numbers and domain/validation.py for line
    structure; lifecycle decisions come from domain/state_machine.py.

Invariants enforced:
    - Every entry has >= 2 lines with non-negative, two-decimal amounts and
      no all-zero line.
    - Only DRAFT entries are edited or deleted.
    - Entry numbers come from the company's locked counter, never max()+1.
    - total_debit/total_credit always equal the line sums.

Failure modes:
    - InsufficientLineItemsError / InvalidAmountError / ValidationError on
      malformed input, raised before anything is added to the session.
    - UnknownAccountError when a line names an account the company does not
      have.
    - EntryNotDraftError on edit/delete of a posted entry.
    - EntryNotFoundError for ids unknown in this company.

Audit relevance:
    Draft creation, edits and deletion are logged with entry_id and number.
"""

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.domain.money import ZERO
from ledger_kernel.domain.state_machine import (
    EntryAction,
    effective_state,
    ensure_transition,
)
from ledger_kernel.domain.validation import validate_line_specs
from ledger_kernel.exceptions import (
    EntryNotFoundError,
    UnknownAccountError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal_store")

ENTRY_NUMBER_FORMAT = "JE-{seq:06d}"


def format_entry_number(seq: int) -> str:
    return ENTRY_NUMBER_FORMAT.format(seq=seq)


class JournalStore(BaseService):
    """
    Company-scoped journal entry storage.

    Contract:
        create_draft validates structure and persists a DRAFT entry with a
        fresh number.  Mutations are only legal while the entry is DRAFT.

    Guarantees:
        - Validation errors are raised before any row is added.
        - Entries of other companies are invisible (EntryNotFoundError).

    Non-goals:
        - Does NOT check debits == credits (PostingEngine does, at posting).
        - Does NOT change account balances.
    """

    def __init__(
        self,
        session: Session,
        company_id: UUID,
        sequences: SequenceService | None = None,
    ):
        super().__init__(session, company_id)
        self._sequences = sequences or SequenceService(session)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_draft(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        reference: str | None = None,
        *,
        actor_id: UUID,
    ) -> JournalEntry:
        """
        Create a DRAFT entry.

        Preconditions:
            - every line's account exists in this company.

        Postconditions:
            - entry.status is DRAFT, entry.number is the next company number,
              lines are stored in the given order.

        Raises:
            InsufficientLineItemsError: fewer than two lines.
            InvalidAmountError: negative, all-zero or sub-cent line.
            ValidationError: missing date or description.
            UnknownAccountError: a line names an unknown account.
        """
        return self._create(
            entry_date, description, lines, reference, actor_id=actor_id
        )

    def create_reversal_draft(
        self,
        original: JournalEntry,
        reason: str,
        *,
        actor_id: UUID,
    ) -> JournalEntry:
        """
        Create the DRAFT reversing entry for a posted entry.

        Same date, every line's debit and credit swapped, reversal_of_id
        pointing at the original.  The original row is not touched.
        """
        swapped = [
            LineSpec(
                account_id=line.account_id,
                debit=line.credit,
                credit=line.debit,
                description=line.description,
            )
            for line in original.lines
        ]
        return self._create(
            original.entry_date,
            f"Reversal of {original.number}: {reason}",
            swapped,
            original.reference,
            actor_id=actor_id,
            reversal_of_id=original.id,
            cancel_reason=reason,
        )

    def _create(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[LineSpec],
        reference: str | None,
        *,
        actor_id: UUID,
        reversal_of_id: UUID | None = None,
        cancel_reason: str | None = None,
    ) -> JournalEntry:
        self._validate_header(entry_date, description)
        normalized = validate_line_specs(lines)
        self._check_accounts_exist(normalized)

        seq = self._sequences.next_value(
            SequenceService.journal_entry_sequence(self.company_id)
        )
        entry = JournalEntry(
            company_id=self.company_id,
            seq=seq,
            number=format_entry_number(seq),
            entry_date=entry_date,
            description=description.strip(),
            reference=reference,
            status=JournalEntryStatus.DRAFT,
            reversal_of_id=reversal_of_id,
            cancel_reason=cancel_reason,
            created_by_id=actor_id,
        )
        self._set_lines(entry, normalized, actor_id)
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "draft_created",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.number,
                "line_count": len(normalized),
                "total_debit": str(entry.total_debit),
                "total_credit": str(entry.total_credit),
            },
        )
        return entry

    # ------------------------------------------------------------------
    # Draft mutation
    # ------------------------------------------------------------------

    def replace_line_items(
        self,
        entry_id: UUID,
        lines: Sequence[LineSpec],
        actor_id: UUID | None = None,
    ) -> JournalEntry:
        """
        Replace all line items of a DRAFT entry.

        Raises:
            EntryNotDraftError: the entry is not DRAFT.
            InsufficientLineItemsError / InvalidAmountError: as create_draft.
        """
        entry = self.get_entry(entry_id)
        self._ensure(entry, EntryAction.EDIT)
        normalized = validate_line_specs(lines)
        self._check_accounts_exist(normalized)

        entry.lines.clear()
        self.session.flush()
        self._set_lines(entry, normalized, actor_id or entry.created_by_id)
        entry.updated_by_id = actor_id or entry.created_by_id
        self.session.flush()

        logger.info(
            "draft_lines_replaced",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.number,
                "line_count": len(normalized),
            },
        )
        return entry

    def update_draft(
        self,
        entry_id: UUID,
        entry_date: date | None = None,
        description: str | None = None,
        reference: str | None = None,
        actor_id: UUID | None = None,
    ) -> JournalEntry:
        """Edit header fields of a DRAFT entry; None leaves a field unchanged."""
        entry = self.get_entry(entry_id)
        self._ensure(entry, EntryAction.EDIT)
        self._validate_header(
            entry_date if entry_date is not None else entry.entry_date,
            description if description is not None else entry.description,
        )

        if entry_date is not None:
            entry.entry_date = entry_date
        if description is not None:
            entry.description = description.strip()
        if reference is not None:
            entry.reference = reference
        entry.updated_by_id = actor_id or entry.created_by_id
        self.session.flush()

        logger.info(
            "draft_updated",
            extra={"entry_id": str(entry.id), "entry_number": entry.number},
        )
        return entry

    def delete_draft(self, entry_id: UUID) -> None:
        """
        Delete a DRAFT entry and its lines.

        Raises:
            EntryNotDraftError: the entry is not DRAFT.
        """
        entry = self.get_entry(entry_id)
        self._ensure(entry, EntryAction.DELETE)
        number = entry.number
        self.session.delete(entry)
        self.session.flush()

        logger.info(
            "draft_deleted",
            extra={"entry_id": str(entry_id), "entry_number": number},
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_entry(self, entry_id: UUID) -> JournalEntry:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.id == entry_id,
                JournalEntry.company_id == self.company_id,
            )
        ).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def get_entry_for_update(self, entry_id: UUID) -> JournalEntry:
        """Load an entry with a row lock (PostgreSQL) and fresh attributes."""
        entry = self.session.execute(
            select(JournalEntry)
            .where(
                JournalEntry.id == entry_id,
                JournalEntry.company_id == self.company_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def get_by_number(self, number: str) -> JournalEntry:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.number == number,
                JournalEntry.company_id == self.company_id,
            )
        ).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(number)
        return entry

    def list_entries(
        self,
        status: JournalEntryStatus | str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[JournalEntry]:
        """Entries of this company, newest first."""
        query = select(JournalEntry).where(JournalEntry.company_id == self.company_id)
        if status is not None:
            query = query.where(JournalEntry.status == JournalEntryStatus(status))
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        query = query.order_by(JournalEntry.entry_date.desc(), JournalEntry.seq.desc())
        return list(self.session.execute(query).scalars())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _ensure(self, entry: JournalEntry, action: EntryAction) -> None:
        ensure_transition(
            str(entry.id),
            effective_state(entry.status, entry.is_reversed),
            action,
        )

    @staticmethod
    def _validate_header(entry_date: date, description: str) -> None:
        if not isinstance(entry_date, date):
            raise ValidationError("Entry date is required")
        if not description or not description.strip():
            raise ValidationError("Entry description is required")

    def _check_accounts_exist(self, lines: Sequence[LineSpec]) -> None:
        wanted = {line.account_id for line in lines}
        found = set(
            self.session.execute(
                select(Account.id).where(
                    Account.id.in_(wanted),
                    Account.company_id == self.company_id,
                )
            ).scalars()
        )
        for line in lines:
            if line.account_id not in found:
                raise UnknownAccountError(str(line.account_id))

    def _set_lines(
        self,
        entry: JournalEntry,
        lines: Sequence[LineSpec],
        actor_id: UUID,
    ) -> None:
        total_debit = ZERO
        total_credit = ZERO
        for index, spec in enumerate(lines):
            entry.lines.append(
                JournalLine(
                    company_id=self.company_id,
                    account_id=spec.account_id,
                    debit=spec.debit,
                    credit=spec.credit,
                    description=spec.description,
                    line_seq=index,
                    created_by_id=actor_id,
                )
            )
            total_debit += spec.debit
            total_credit += spec.credit
        entry.total_debit = total_debit
        entry.total_credit = total_credit
