"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never add, delete, flush or commit.
    - DTO return convention: query results leave as frozen dataclasses
      unless the caller explicitly asks for ORM rows (get_* lookups used by
      services).
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Accepts a Session from the caller and performs read-only queries.
        The caller owns the session and its snapshot.
    """

    def __init__(self, session: Session):
        self.session = session
