"""
SequenceService: per-name monotonic counters committed with the caller.
"""

from uuid import uuid4

from ledger_kernel.db.engine import session_scope
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService


def test_values_start_at_one_and_increase(session):
    seq = SequenceService(session)
    assert [seq.next_value("test") for _ in range(3)] == [1, 2, 3]


def test_names_are_independent(session):
    seq = SequenceService(session)
    seq.next_value("a")
    seq.next_value("a")
    assert seq.next_value("b") == 1


def test_rollback_releases_value(session_factory):
    with session_factory() as s:
        SequenceService(s).next_value("rolled")
        s.rollback()
    with session_scope(session_factory) as s:
        assert SequenceService(s).next_value("rolled") == 1


def test_committed_value_persists(session_factory):
    with session_scope(session_factory) as s:
        SequenceService(s).next_value("kept")
    with session_scope(session_factory) as s:
        assert SequenceService(s).next_value("kept") == 2
        assert s.query(SequenceCounter).filter_by(name="kept").one().current_value == 2


def test_journal_entry_sequence_is_per_company():
    a, b = uuid4(), uuid4()
    assert SequenceService.journal_entry_sequence(a) == f"journal_entry:{a}"
    assert SequenceService.journal_entry_sequence(a) != SequenceService.journal_entry_sequence(b)
