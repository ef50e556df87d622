"""
Ledger log events as JSON: bound posting context, drift and invariant alerts.
"""

import json
import logging
import sys
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from ledger_kernel.db.engine import session_scope
from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import UnbalancedEntryError
from ledger_kernel.logging_config import (
    ROOT_LOGGER,
    LedgerJSONFormatter,
    LedgerLogContext,
    configure_logging,
    current_context,
    get_logger,
    log_context,
)
from ledger_kernel.models.account import Account
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.journal_store import JournalStore
from ledger_kernel.services.posting_engine import PostingEngine
from ledger_reports.statements import check_trial_balance

D = date(2024, 3, 1)


def _events(records, message):
    return [r for r in records if r["message"] == message]


class TestPostingRunContext:
    def test_conflict_and_completion_carry_attempt(
        self, session_factory, company_id, cash, revenue, test_actor_id, captured_logs
    ):
        engine = PostingEngine(session_factory, company_id, sleep=lambda s: None)
        real_apply = engine._apply_posting
        calls = {"n": 0}

        def flaky_apply(session, entry, actor_id):
            calls["n"] += 1
            if calls["n"] == 1:
                raise StaleDataError("account version moved")
            return real_apply(session, entry, actor_id)

        engine._apply_posting = flaky_apply
        engine.record(
            D, "retried sale",
            [LineSpec.dr(cash, "12.00"), LineSpec.cr(revenue, "12.00")],
            actor_id=test_actor_id,
        )
        records = captured_logs()

        [conflict] = _events(records, "posting_conflict")
        assert conflict["level"] == "WARNING"
        assert conflict["operation"] == "record"
        assert conflict["attempt"] == 1
        assert conflict["max_attempts"] == 3
        assert conflict["error_type"] == "StaleDataError"
        assert conflict["company_id"] == str(company_id)

        [completed] = _events(records, "posting_completed")
        assert completed["attempt"] == 2
        assert completed["correlation_id"] == conflict["correlation_id"]

        [started] = _events(records, "posting_started")
        assert "attempt" not in started

    def test_post_binds_entry_id(
        self, posting_engine, cash, revenue, test_actor_id, captured_logs, session_factory, company_id
    ):
        with session_scope(session_factory) as s:
            entry = JournalStore(s, company_id).create_draft(
                D, "draft sale",
                [LineSpec.dr(cash, "5.00"), LineSpec.cr(revenue, "5.00")],
                actor_id=test_actor_id,
            )
            entry_id = entry.id

        posting_engine.post(entry_id, actor_id=test_actor_id)
        [completed] = _events(captured_logs(), "posting_completed")
        assert completed["operation"] == "post"
        assert completed["entry_id"] == str(entry_id)

    def test_rejected_posting_logs_error_code(
        self, posting_engine, cash, revenue, test_actor_id, captured_logs
    ):
        with pytest.raises(UnbalancedEntryError):
            posting_engine.record(
                D, "short credit",
                [LineSpec.dr(cash, "100.00"), LineSpec.cr(revenue, "90.00")],
                actor_id=test_actor_id,
            )
        [failed] = _events(captured_logs(), "posting_failed")
        assert failed["error_code"] == "UNBALANCED_ENTRY"
        assert failed["operation"] == "record"

    def test_context_released_after_run(self, posting_engine, cash, revenue, test_actor_id):
        posting_engine.record(
            D, "sale", [LineSpec.dr(cash, "1.00"), LineSpec.cr(revenue, "1.00")],
            actor_id=test_actor_id,
        )
        assert current_context() == LedgerLogContext()


class TestLedgerAlerts:
    def test_balance_drift_detected(self, session_factory, company_id, cash, captured_logs):
        with session_scope(session_factory) as s:
            s.execute(
                update(Account)
                .where(Account.id == cash)
                .values(balance=Decimal("4.50"), version=Account.version + 1)
            )
        with session_scope(session_factory) as s:
            AccountRegistry(s, company_id).reconcile(cash)

        [drift] = _events(captured_logs(), "balance_drift_detected")
        assert drift["level"] == "WARNING"
        assert drift["logger"] == "ledger_kernel.services.account_registry"
        assert drift["cached"] == "4.50"
        assert drift["recomputed"] == "0.00"
        assert drift["difference"] == "4.50"

    def test_trial_balance_invariant_failed(self, captured_logs):
        check_trial_balance(Decimal("250.00"), Decimal("249.99"), date(2024, 3, 31))

        [failure] = _events(captured_logs(), "trial_balance_invariant_failed")
        assert failure["level"] == "ERROR"
        assert failure["as_of"] == "2024-03-31"
        assert failure["difference"] == "0.01"
        assert "company_id" not in failure

    def test_balanced_trial_balance_is_silent(self, captured_logs):
        check_trial_balance(Decimal("250.00"), Decimal("250.00"))
        assert _events(captured_logs(), "trial_balance_invariant_failed") == []


class TestLogContext:
    def test_nested_blocks_layer_and_restore(self):
        company = uuid4()
        with log_context(company_id=company, operation="cancel"):
            with log_context(attempt=2, operation=None):
                ctx = current_context()
                assert ctx.company_id == str(company)
                assert ctx.operation == "cancel"
                assert ctx.attempt == 2
            assert current_context().attempt is None
        assert current_context() == LedgerLogContext()

    def test_restored_when_block_raises(self):
        with pytest.raises(RuntimeError):
            with log_context(operation="post"):
                raise RuntimeError("work failed")
        assert current_context().operation is None

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            with log_context(trace_id="x"):
                pass


class TestFormatter:
    def _format(self, record: logging.LogRecord) -> dict:
        return json.loads(LedgerJSONFormatter().format(record))

    def _record(self, msg="event", exc_info=None, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            "ledger_kernel.test", logging.INFO, __file__, 1, msg, (), exc_info
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_amounts_and_ids_as_text(self):
        account_id = uuid4()
        payload = self._format(
            self._record(amount=Decimal("10.50"), account_id=account_id, entry_date=D)
        )
        assert payload["amount"] == "10.50"
        assert payload["account_id"] == str(account_id)
        assert payload["entry_date"] == "2024-03-01"

    def test_extra_overrides_bound_entry_id(self):
        reversal_id = str(uuid4())
        with log_context(entry_id=uuid4()):
            payload = self._format(self._record(entry_id=reversal_id))
        assert payload["entry_id"] == reversal_id

    def test_ledger_error_fields(self):
        try:
            raise UnbalancedEntryError("100.00", "90.00", entry_id="e-1")
        except UnbalancedEntryError:
            payload = self._format(self._record(exc_info=sys.exc_info()))
        assert payload["error"]["code"] == "UNBALANCED_ENTRY"
        assert payload["error"]["fields"] == {
            "debits": "100.00", "credits": "90.00", "entry_id": "e-1",
        }
        assert "Traceback" in payload["traceback"]


class TestConfigureLogging:
    @pytest.fixture
    def bare_root(self):
        root = logging.getLogger(ROOT_LOGGER)
        saved = (list(root.handlers), root.level, root.propagate)
        root.handlers.clear()
        yield root
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
        root.propagate = saved[2]

    def test_first_call_wins(self, bare_root):
        stream = StringIO()
        first = configure_logging(level=logging.WARNING, stream=stream)
        second = configure_logging(level=logging.DEBUG)
        assert second is first
        assert bare_root.handlers == [first]
        assert bare_root.level == logging.WARNING
        assert not bare_root.propagate

        get_logger("services.posting_engine").warning("posting_conflict")
        line = json.loads(stream.getvalue())
        assert line["logger"] == "ledger_kernel.services.posting_engine"
