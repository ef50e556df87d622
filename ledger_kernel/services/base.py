"""
BaseService -- abstract base for company-scoped kernel services.

Responsibility:
    Common constructor and session-handling contract.  Services receive a
    SQLAlchemy ``Session`` and a ``company_id`` and persist through
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (PostingEngine, session_scope, or test harness) owns commit/rollback.
    - Tenant scoping: every query a service issues filters on its
      company_id; rows of other companies behave as if absent.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Contract:
        Accepts a Session from the caller and uses ``session.flush()`` to
        persist changes within the active transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide report queries -- those belong in selectors/.
    """

    def __init__(self, session: Session, company_id: UUID):
        self.session = session
        self.company_id = company_id
