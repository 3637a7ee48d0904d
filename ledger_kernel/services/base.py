"""
BaseService -- abstract base for all kernel write services.

Responsibility:
    Common constructor and session-handling contract.  Services receive a
    SQLAlchemy ``Session`` and use ``session.flush()`` -- never
    ``session.commit()``.  The caller (``LedgerStore.session_scope()`` or a
    test harness) owns commit and rollback, so multi-step operations such
    as "create subaccount, post entry, apply deltas" stay atomic.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import SYSTEM_ACTOR_ID
from ledger_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never commits or rolls back the caller's transaction.
          Savepoints it opens itself are released or rolled back locally.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
    ):
        self.session = session
        self.clock = clock or SystemClock()
        self.actor_id = actor_id or SYSTEM_ACTOR_ID
