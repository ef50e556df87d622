"""
ORM immutability listeners on posted history.

Posted entries and their lines refuse UPDATE and DELETE; accounts refuse
DELETE always.  Audit metadata columns stay writable.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus


@pytest.fixture
def posted_id(posting_engine, cash, revenue, test_actor_id):
    return posting_engine.record(
        date(2024, 1, 3), "sale",
        [LineSpec.dr(cash, "12.00"), LineSpec.cr(revenue, "12.00")],
        actor_id=test_actor_id,
    ).entry_id


class TestPostedEntry:
    def test_description_change_blocked(self, session, posted_id, captured_logs):
        entry = session.get(JournalEntry, posted_id)
        entry.description = "rewritten"
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "JournalEntry"
        assert any(
            r["message"] == "immutability_violation_blocked" and r["field"] == "description"
            for r in captured_logs()
        )

    def test_status_back_to_draft_blocked(self, session, posted_id):
        session.get(JournalEntry, posted_id).status = JournalEntryStatus.DRAFT
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, posted_id):
        session.delete(session.get(JournalEntry, posted_id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_audit_fields_writable(self, session, posted_id, test_actor_id):
        entry = session.get(JournalEntry, posted_id)
        entry.updated_by_id = test_actor_id
        session.flush()


class TestPostedLines:
    def test_amount_change_blocked(self, session, posted_id):
        line = session.get(JournalEntry, posted_id).lines[0]
        line.debit = Decimal("13.00")
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.entity_type == "JournalLine"

    def test_line_removal_blocked(self, session, posted_id):
        entry = session.get(JournalEntry, posted_id)
        session.delete(entry.lines[0])
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestDraftsStayMutable:
    def test_draft_lines_editable(self, session, company_id, cash, revenue, test_actor_id):
        from ledger_kernel.services.journal_store import JournalStore

        entry = JournalStore(session, company_id).create_draft(
            date(2024, 1, 3), "draft",
            [LineSpec.dr(cash, "1.00"), LineSpec.cr(revenue, "1.00")],
            actor_id=test_actor_id,
        )
        entry.lines[0].description = "edited"
        entry.description = "edited too"
        session.flush()


def test_unregister_and_register_are_idempotent(session, posted_id):
    unregister_immutability_listeners()
    unregister_immutability_listeners()
    try:
        session.get(JournalEntry, posted_id).description = "corrupted"
        session.flush()
    finally:
        register_immutability_listeners()
        register_immutability_listeners()
    session.rollback()

    session.get(JournalEntry, posted_id).description = "again"
    with pytest.raises(ImmutabilityViolationError):
        session.flush()
