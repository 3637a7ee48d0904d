"""ORM models of the ledger kernel."""

from ledger_kernel.models.account import Account
from ledger_kernel.models.fiscal_config import WHOLE_YEAR, FiscalConfig, PeriodLock
from ledger_kernel.models.journal import JournalEntry, JournalLine

__all__ = [
    "Account",
    "FiscalConfig",
    "PeriodLock",
    "WHOLE_YEAR",
    "JournalEntry",
    "JournalLine",
]
