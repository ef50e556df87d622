"""
SequenceService -- per-company monotonic counters via locked rows.

Responsibility:
    Provides strictly increasing sequence numbers for journal entry
    numbers.  Uses a dedicated counter table; the increment is a single
    ``UPDATE ... SET current_value = current_value + 1`` which takes the
    row lock until the caller's transaction ends.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalStore when a draft is created.

Invariants enforced:
    - Monotonicity: the aggregate-max-plus-one pattern is never used; the
      counter row is the sole source of truth for the next value.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - Concurrent first use of a counter is absorbed by
      INSERT ... ON CONFLICT DO NOTHING (PostgreSQL and SQLite).

Audit relevance:
    Allocation is logged at DEBUG level with sequence_name and value.
"""

from uuid import UUID, uuid4

from sqlalchemy import BigInteger, String, select, update
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "journal_entry:<company_id>")
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-monotonic
        integer value.  The increment commits with the caller's transaction.

    Guarantees:
        - Concurrent allocations for the same name are serialized by the
          row lock taken by the UPDATE.
        - Values start at 1.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.

    Usage:
        seq = SequenceService(session).next_value(
            SequenceService.journal_entry_sequence(company_id)
        )
    """

    JOURNAL_ENTRY = "journal_entry"

    def __init__(self, session: Session):
        self._session = session

    @classmethod
    def journal_entry_sequence(cls, company_id: UUID) -> str:
        """Counter name for a company's journal entry numbers."""
        return f"{cls.JOURNAL_ENTRY}:{company_id}"

    def _ensure_counter(self, sequence_name: str) -> None:
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            exists = self._session.execute(
                select(SequenceCounter.id).where(SequenceCounter.name == sequence_name)
            ).scalar_one_or_none()
            if exists is None:
                self._session.add(SequenceCounter(name=sequence_name, current_value=0))
                self._session.flush()
            return

        self._session.execute(
            insert(SequenceCounter)
            .values(id=uuid4(), name=sequence_name, current_value=0)
            .on_conflict_do_nothing(index_elements=["name"])
        )

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Preconditions:
            - The caller is within an active database transaction.

        Postconditions:
            - Returns an integer > 0 strictly greater than any previously
              committed value for this name.
            - The counter row stays locked until the transaction completes.
        """
        self._ensure_counter(sequence_name)

        self._session.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=SequenceCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )
        value = self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one()

        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": value},
        )
        return value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()
