"""Database layer - engine, base classes, types and tenant stores."""

from ledger_kernel.db.base import SYSTEM_ACTOR_ID, UUID, Base, TrackedBase, UUIDString
from ledger_kernel.db.engine import build_engine, create_tables, drop_tables
from ledger_kernel.db.store import (
    LedgerStore,
    LedgerStoreFactory,
    StaticStoreFactory,
    UrlTemplateStoreFactory,
)
from ledger_kernel.db.types import BALANCE_TOLERANCE, Money, round_money, to_money

__all__ = [
    "build_engine",
    "create_tables",
    "drop_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "SYSTEM_ACTOR_ID",
    "LedgerStore",
    "LedgerStoreFactory",
    "StaticStoreFactory",
    "UrlTemplateStoreFactory",
    "Money",
    "BALANCE_TOLERANCE",
    "round_money",
    "to_money",
]
