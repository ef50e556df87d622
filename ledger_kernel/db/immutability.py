"""
ORM-level immutability enforcement for posted ledger history.

===============================================================================
WHAT IS PROTECTED
===============================================================================

Entity        | Protected when                 | Why
--------------|--------------------------------|-------------------------------
JournalEntry  | status == POSTED (after flush) | Posted history is append-only
JournalLine   | parent entry is POSTED         | Lines belong to posted history
Account       | always (DELETE)                | Accounts are soft-deactivated

The posting workflow itself sets status=POSTED, so the DRAFT -> POSTED
transition is allowed.  Every change AFTER that transition is blocked,
except the audit metadata columns (updated_at, updated_by_id, version).
Cancellation never trips these listeners: it appends a reversing entry and
leaves the original untouched.

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent; done by init_engine_from_url

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id", "version"})


def _block(entity_type: str, entity_id, operation: str, reason: str, **extra) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            **extra,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_account_deletion_before_flush(session, flush_context, instances):
    """
    Refuse hard deletes of accounts.

    Runs in SessionEvents.before_flush, before the flush plan is finalized.
    """
    from ledger_kernel.models.account import Account

    for obj in list(session.deleted):
        if isinstance(obj, Account):
            _block(
                "Account",
                obj.id,
                "DELETE",
                "Accounts are deactivated, never deleted",
            )


def _check_journal_entry_immutability(mapper, connection, target):
    """
    Prevent updates to posted JournalEntry records.

    Logic:
        1. status changing FROM posted -> block.
        2. status unchanged and posted -> block any non-audit field change.
        3. status changing TO posted (DRAFT -> POSTED) -> allow.
    """
    from ledger_kernel.models.journal import JournalEntryStatus

    status_history = get_history(target, "status")

    was_posted_before = False
    if status_history.deleted:
        was_posted_before = status_history.deleted[0] == JournalEntryStatus.POSTED
    elif not status_history.added:
        was_posted_before = target.status == JournalEntryStatus.POSTED

    if not was_posted_before:
        return

    insp = inspect(target)
    for column_attr in insp.mapper.column_attrs:
        if column_attr.key in _AUDIT_FIELDS:
            continue
        attr = insp.attrs[column_attr.key]
        if attr.history.has_changes():
            _block(
                "JournalEntry",
                target.id,
                "UPDATE",
                f"Cannot modify field '{attr.key}' on posted journal entry",
                field=attr.key,
            )


def _check_journal_entry_delete(mapper, connection, target):
    """Prevent deletion of posted JournalEntry records."""
    from ledger_kernel.models.journal import JournalEntryStatus

    if target.status == JournalEntryStatus.POSTED:
        _block(
            "JournalEntry",
            target.id,
            "DELETE",
            "Posted journal entries cannot be deleted",
        )


def _parent_is_posted(connection, target) -> bool:
    """Read the persisted parent status (not the in-memory one)."""
    from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus

    status = connection.execute(
        select(JournalEntry.status).where(JournalEntry.id == target.journal_entry_id)
    ).scalar_one_or_none()
    return status == JournalEntryStatus.POSTED


def _check_journal_line_immutability(mapper, connection, target):
    """Prevent updates to JournalLine when the parent entry is posted."""
    if _parent_is_posted(connection, target):
        _block(
            "JournalLine",
            target.id,
            "UPDATE",
            "Journal lines cannot be modified after parent entry is posted",
        )


def _check_journal_line_delete(mapper, connection, target):
    """Prevent deletion of JournalLine when the parent entry is posted."""
    if _parent_is_posted(connection, target):
        _block(
            "JournalLine",
            target.id,
            "DELETE",
            "Journal lines cannot be deleted after parent entry is posted",
        )


def _listeners():
    from ledger_kernel.models.journal import JournalEntry, JournalLine

    return (
        (Session, "before_flush", _check_account_deletion_before_flush),
        (JournalEntry, "before_update", _check_journal_entry_immutability),
        (JournalEntry, "before_delete", _check_journal_entry_delete),
        (JournalLine, "before_update", _check_journal_line_immutability),
        (JournalLine, "before_delete", _check_journal_line_delete),
    )


def register_immutability_listeners() -> None:
    """Register all immutability listeners (safe to call repeatedly)."""
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def unregister_immutability_listeners() -> None:
    """
    Remove immutability listeners.

    WARNING: Only use this in tests that deliberately corrupt history to
    verify detection (e.g. reconciliation drift tests).
    """
    for target, event_name, fn in _listeners():
        if event.contains(target, event_name, fn):
            event.remove(target, event_name, fn)
