"""Read-only selectors over the ledger tables."""

from ledger_kernel.selectors.account_selector import AccountDTO, AccountSelector
from ledger_kernel.selectors.journal_selector import (
    DEFAULT_PAGE_SIZE,
    EntryFilter,
    EntryPage,
    JournalEntryDTO,
    JournalLineDTO,
    JournalSelector,
)
from ledger_kernel.selectors.ledger_selector import (
    AccountBalanceAsOf,
    AccountTotalsRow,
    LedgerLineRow,
    LedgerSelector,
    LineTotals,
    effective_entry_conditions,
)

__all__ = [
    "AccountDTO",
    "AccountSelector",
    "DEFAULT_PAGE_SIZE",
    "EntryFilter",
    "EntryPage",
    "JournalEntryDTO",
    "JournalLineDTO",
    "JournalSelector",
    "AccountBalanceAsOf",
    "AccountTotalsRow",
    "LedgerLineRow",
    "LedgerSelector",
    "LineTotals",
    "effective_entry_conditions",
]
