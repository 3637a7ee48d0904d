"""Write-side kernel services.  Services flush; callers commit."""

from ledger_kernel.services.balance_service import AccountBalanceIndex
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.chart_service import (
    ChartOfAccountsService,
    PartyDirectory,
    PartyLink,
)
from ledger_kernel.services.fiscal_config_service import FiscalConfigService
from ledger_kernel.services.journal_service import JournalLedgerService
from ledger_kernel.services.sequence_service import SequenceCounter, SequenceService

__all__ = [
    "AccountBalanceIndex",
    "BaseService",
    "ChartOfAccountsService",
    "PartyDirectory",
    "PartyLink",
    "FiscalConfigService",
    "JournalLedgerService",
    "SequenceCounter",
    "SequenceService",
]
