"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (invoice workflows, reporting endpoints, the API layer) must react
to ledger failures without parsing message strings.  Every error therefore:
  1. Has its own class (catch by type, not by message)
  2. Carries a static ``code`` class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (structured, loggable)

Messages only repeat identifiers the caller supplied.  Internal ids the
caller did not pass in (e.g. the id of a conflicting account) stay in
attributes for logging and never reach the message.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError
    |   +-- InsufficientLineItemsError
    |   +-- InvalidAmountError
    |   +-- DuplicateCodeError
    |   +-- InvalidParentError
    |
    +-- UnbalancedEntryError
    |
    +-- InvalidStateTransitionError
    |   +-- EntryNotDraftError
    |   +-- AlreadyPostedError
    |   +-- EntryNotPostedError
    |   +-- EntryAlreadyReversedError
    |   +-- EntryHasDependentsError
    |   +-- AccountHasActivityError
    |   +-- AccountHasChildrenError
    |   +-- ImmutabilityViolationError
    |
    +-- ReferenceError
    |   +-- UnknownAccountError
    |
    +-- NotFoundError
    |   +-- AccountNotFoundError
    |   +-- EntryNotFoundError
    |
    +-- ConcurrencyConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                     | When Raised
-------------|--------------------------|------------------------------------------
Validation   | VALIDATION_ERROR         | Malformed input
             | INSUFFICIENT_LINE_ITEMS  | Fewer than two line items
             | INVALID_AMOUNT           | Negative, zero-line, or sub-cent amount
             | DUPLICATE_CODE           | Account code already used in company
             | INVALID_PARENT           | Parent missing or in another company
-------------|--------------------------|------------------------------------------
Posting      | UNBALANCED_ENTRY         | Debits != credits at posting time
-------------|--------------------------|------------------------------------------
State        | ENTRY_NOT_DRAFT          | Editing/deleting a non-draft entry
             | ALREADY_POSTED           | Posting a posted entry
             | ENTRY_NOT_POSTED         | Cancelling a draft
             | ENTRY_ALREADY_REVERSED   | Cancelling twice / cancelling a reversal
             | ENTRY_HAS_DEPENDENTS     | Cancel blocked by dependent documents
             | ACCOUNT_HAS_ACTIVITY     | Deactivating a referenced account
             | ACCOUNT_HAS_CHILDREN     | Deactivating a parent account
             | IMMUTABILITY_VIOLATION   | ORM write to posted history
-------------|--------------------------|------------------------------------------
Reference    | UNKNOWN_ACCOUNT          | Line references missing/inactive account
-------------|--------------------------|------------------------------------------
Not found    | ACCOUNT_NOT_FOUND        | Account id unknown in this company
             | ENTRY_NOT_FOUND          | Entry id unknown in this company
-------------|--------------------------|------------------------------------------
Concurrency  | CONCURRENCY_CONFLICT     | Lost update detected on balance write

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        engine.post(entry_id, actor_id=actor)
    except UnbalancedEntryError as e:
        return {"error": e.code, "debits": e.debits, "credits": e.credits}
    except InvalidStateTransitionError as e:
        return {"error": e.code}

ConcurrencyConflictError is retried inside the PostingEngine; callers only
see it once the configured attempts are exhausted.
"""


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses define a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"


# Validation errors


class ValidationError(LedgerError):
    """Malformed input rejected before any mutation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)


class InsufficientLineItemsError(ValidationError):
    """A journal entry needs at least two line items."""

    code: str = "INSUFFICIENT_LINE_ITEMS"

    def __init__(self, count: int, minimum: int = 2):
        self.count = count
        self.minimum = minimum
        super().__init__(
            f"Journal entry requires at least {minimum} line items, got {count}"
        )


class InvalidAmountError(ValidationError):
    """A line item amount is negative, empty, or too precise."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, line_index: int, reason: str):
        self.line_index = line_index
        self.reason = reason
        super().__init__(f"Invalid amount on line {line_index}: {reason}")


class DuplicateCodeError(ValidationError):
    """Account code is already used in this company."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class InvalidParentError(ValidationError):
    """Parent account does not exist in this company."""

    code: str = "INVALID_PARENT"

    def __init__(self, parent_id: str):
        self.parent_id = parent_id
        super().__init__(f"Invalid parent account: {parent_id}")


# Posting errors


class UnbalancedEntryError(LedgerError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, debits: str, credits: str, entry_id: str | None = None):
        self.debits = debits
        self.credits = credits
        self.entry_id = entry_id
        super().__init__(
            f"Unbalanced entry: debits={debits}, credits={credits}"
        )


# State transition errors


class InvalidStateTransitionError(LedgerError):
    """Operation is not legal in the entity's current state."""

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, message: str):
        super().__init__(message)


class EntryNotDraftError(InvalidStateTransitionError):
    """Only draft entries may be edited or deleted."""

    code: str = "ENTRY_NOT_DRAFT"

    def __init__(self, entry_id: str, status: str, action: str):
        self.entry_id = entry_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} journal entry {entry_id}: status is {status}"
        )


class AlreadyPostedError(InvalidStateTransitionError):
    """Entry has already been posted."""

    code: str = "ALREADY_POSTED"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry {entry_id} is already posted")


class EntryNotPostedError(InvalidStateTransitionError):
    """Only posted entries may be cancelled."""

    code: str = "ENTRY_NOT_POSTED"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(
            f"Cannot cancel journal entry {entry_id}: status is {status}, not posted"
        )


class EntryAlreadyReversedError(InvalidStateTransitionError):
    """Entry has already been reversed, or is itself a reversal."""

    code: str = "ENTRY_ALREADY_REVERSED"

    def __init__(self, entry_id: str, reason: str = "already reversed"):
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Cannot cancel journal entry {entry_id}: {reason}")


class EntryHasDependentsError(InvalidStateTransitionError):
    """Entry has dependent records (e.g. payments) and cannot be cancelled."""

    code: str = "ENTRY_HAS_DEPENDENTS"

    def __init__(self, entry_id: str, dependents: tuple[str, ...]):
        self.entry_id = entry_id
        self.dependents = dependents
        super().__init__(
            f"Cannot cancel journal entry {entry_id}: "
            f"{len(dependents)} dependent record(s) exist"
        )


class AccountHasActivityError(InvalidStateTransitionError):
    """Account is referenced by line items and cannot be deactivated."""

    code: str = "ACCOUNT_HAS_ACTIVITY"

    def __init__(self, account_id: str, line_count: int):
        self.account_id = account_id
        self.line_count = line_count
        super().__init__(
            f"Cannot deactivate account {account_id}: "
            f"it has {line_count} line item{'s' if line_count != 1 else ''}"
        )


class AccountHasChildrenError(InvalidStateTransitionError):
    """Account is a parent of other accounts and cannot be deactivated."""

    code: str = "ACCOUNT_HAS_CHILDREN"

    def __init__(self, account_id: str, child_count: int):
        self.account_id = account_id
        self.child_count = child_count
        super().__init__(
            f"Cannot deactivate account {account_id}: "
            f"it has {child_count} child account{'s' if child_count != 1 else ''}"
        )


class ImmutabilityViolationError(InvalidStateTransitionError):
    """Attempted to modify or delete posted history."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Reference errors


class ReferenceError(LedgerError):  # noqa: A001 - ledger taxonomy name
    """A line item points at something that cannot be posted to."""

    code: str = "REFERENCE_ERROR"


class UnknownAccountError(ReferenceError):
    """Line item account is unknown, inactive, or in another company."""

    code: str = "UNKNOWN_ACCOUNT"

    def __init__(self, account_id: str, reason: str = "not found"):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Unknown account {account_id}: {reason}")


# Not found errors


class NotFoundError(LedgerError):
    """Requested entity does not exist in this company."""

    code: str = "NOT_FOUND"


class AccountNotFoundError(NotFoundError):
    """Account was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class EntryNotFoundError(NotFoundError):
    """Journal entry was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


# Concurrency errors


class ConcurrencyConflictError(LedgerError):
    """Concurrent modification of an account balance was detected."""

    code: str = "CONCURRENCY_CONFLICT"

    def __init__(self, entity_type: str, entity_id: str, attempts: int = 1):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.attempts = attempts
        super().__init__(
            f"Concurrency conflict on {entity_type} after {attempts} attempt(s)"
        )
