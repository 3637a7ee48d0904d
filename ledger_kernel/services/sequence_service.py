"""
SequenceService -- race-free journal numbering via counter rows.

Responsibility:
    Provides strictly increasing numbers for named sequences (one per
    fiscal year when numbering resets yearly, one global otherwise).  The
    counter is advanced with a single storage-native atomic statement,
    ``UPDATE sequence_counters SET current_value = current_value + 1``,
    never with a read-then-write in Python.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalLedgerService when an entry is posted.

Invariants enforced:
    - Two concurrent allocations on the same sequence never return the
      same value: the UPDATE holds the row lock until the caller's
      transaction ends (PostgreSQL) or the whole write transaction is
      serialized (SQLite, BEGIN IMMEDIATE).
    - Transactional: a rolled-back caller gives its value back.
    - Every allocation first raises the counter to ``start_after`` (e.g. the
      highest number already stored for that fiscal year), so "max + 1"
      holds even when numbers were handed out by another counter.

Failure modes:
    - IntegrityError on concurrent first creation: handled by a savepoint
      rollback followed by a plain increment.
    - ConcurrencyConflictError if the counter can neither be created nor
      incremented (bounded; should not happen outside a broken schema).
"""

from collections.abc import Callable

from sqlalchemy import String, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.exceptions import ConcurrencyConflictError
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence holding the last value handed out.
    """

    __tablename__ = "sequence_counters"

    # e.g. "journal_entry" or "journal_entry:2024"
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(nullable=False, default=0)


class SequenceService:
    """
    Service for transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next value.  The increment
        becomes visible to others only when the caller's transaction
        commits.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    JOURNAL_ENTRY = "journal_entry"

    MAX_ATTEMPTS = 3

    def __init__(self, session: Session):
        self._session = session

    @classmethod
    def journal_sequence_name(cls, fiscal_year: int | None) -> str:
        """Counter name for journal numbers: per year, or global when None."""
        if fiscal_year is None:
            return cls.JOURNAL_ENTRY
        return f"{cls.JOURNAL_ENTRY}:{fiscal_year}"

    def next_value(
        self,
        sequence_name: str,
        start_after: int | Callable[[], int] = 0,
    ) -> int:
        """
        Allocate the next value of a named sequence.

        Preconditions:
            - The caller is within an active database transaction.

        Postconditions:
            - Returns a value strictly greater than every value previously
              returned for this sequence and greater than ``start_after``.

        Args:
            sequence_name: Name of the sequence.
            start_after: Value (or callable producing it) the counter is
                raised to before incrementing.  Evaluated once per call.

        Returns:
            The allocated value.
        """
        floor = int((start_after() if callable(start_after) else start_after) or 0)
        for attempt in range(1, self.MAX_ATTEMPTS + 1):
            self._raise_to(sequence_name, floor)
            if self._increment(sequence_name):
                value = self._read(sequence_name)
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": value},
                )
                return value

            created = self._create(sequence_name, floor)
            if created is not None:
                logger.debug(
                    "sequence_created",
                    extra={"sequence_name": sequence_name, "value": created},
                )
                return created

            # Another transaction created the counter first; increment it
            logger.warning(
                "sequence_counter_race_retry",
                extra={"sequence_name": sequence_name, "attempt": attempt},
            )

        raise ConcurrencyConflictError(f"sequence:{sequence_name}", self.MAX_ATTEMPTS)

    def current_value(self, sequence_name: str) -> int | None:
        """Last value handed out, or None if the sequence does not exist."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()

    def _increment(self, sequence_name: str) -> bool:
        result = self._session.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=SequenceCounter.current_value + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _read(self, sequence_name: str) -> int:
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one()

    def _raise_to(self, sequence_name: str, floor: int) -> None:
        self._session.execute(
            update(SequenceCounter)
            .where(
                SequenceCounter.name == sequence_name,
                SequenceCounter.current_value < floor,
            )
            .values(current_value=floor)
            .execution_options(synchronize_session=False)
        )

    def _create(self, sequence_name: str, floor: int) -> int | None:
        value = floor + 1

        savepoint = self._session.begin_nested()
        try:
            self._session.add(SequenceCounter(name=sequence_name, current_value=value))
            self._session.flush()
        except IntegrityError:
            savepoint.rollback()
            return None
        savepoint.commit()
        return value
