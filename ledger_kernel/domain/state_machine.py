"""
Journal entry lifecycle (``ledger_kernel.domain.state_machine``).

Responsibility
--------------
Single transition table for journal entries.  Services ask this module
whether an action is legal instead of scattering status checks.

Architecture position
---------------------
**Kernel domain layer** -- pure.  ZERO I/O.

Lifecycle
---------
::

    DRAFT --edit-->   DRAFT
    DRAFT --delete--> (removed)
    DRAFT --post-->   POSTED
    POSTED --cancel-> REVERSED   (derived: a posted reversing entry exists)

Anything else raises a subclass of InvalidStateTransitionError chosen by
the attempted action, so callers can catch the precise failure.
"""

from __future__ import annotations

from enum import Enum

from ledger_kernel.exceptions import (
    AlreadyPostedError,
    EntryAlreadyReversedError,
    EntryNotDraftError,
    EntryNotPostedError,
)


class EntryState(str, Enum):
    """Effective state: persisted status plus the derived REVERSED state."""

    DRAFT = "draft"
    POSTED = "posted"
    REVERSED = "reversed"


class EntryAction(str, Enum):
    EDIT = "edit"
    DELETE = "delete"
    POST = "post"
    CANCEL = "cancel"


# None as target means the entry is removed.
TRANSITIONS: dict[tuple[EntryState, EntryAction], EntryState | None] = {
    (EntryState.DRAFT, EntryAction.EDIT): EntryState.DRAFT,
    (EntryState.DRAFT, EntryAction.DELETE): None,
    (EntryState.DRAFT, EntryAction.POST): EntryState.POSTED,
    (EntryState.POSTED, EntryAction.CANCEL): EntryState.REVERSED,
}


def effective_state(status: str, is_reversed: bool) -> EntryState:
    """Combine the persisted status with the derived reversal flag."""
    state = EntryState(status)
    if state == EntryState.POSTED and is_reversed:
        return EntryState.REVERSED
    return state


def is_allowed(state: EntryState, action: EntryAction) -> bool:
    return (state, action) in TRANSITIONS


def ensure_transition(
    entry_id: str,
    state: EntryState,
    action: EntryAction,
) -> EntryState | None:
    """
    Return the target state for ``action`` or raise.

    Raises:
        EntryNotDraftError: edit/delete outside DRAFT.
        AlreadyPostedError: post outside DRAFT.
        EntryNotPostedError: cancel of a DRAFT.
        EntryAlreadyReversedError: cancel of a REVERSED entry.
    """
    key = (state, action)
    if key in TRANSITIONS:
        return TRANSITIONS[key]

    if action in (EntryAction.EDIT, EntryAction.DELETE):
        raise EntryNotDraftError(entry_id, state.value, action.value)
    if action == EntryAction.POST:
        raise AlreadyPostedError(entry_id)
    if state == EntryState.DRAFT:
        raise EntryNotPostedError(entry_id, state.value)
    raise EntryAlreadyReversedError(entry_id)
