"""Pure domain layer: classification rules, DTOs, totals, settings, report layouts, clock."""

from ledger_kernel.domain.classification import (
    AccountType,
    Classification,
    Nature,
    PartyType,
    account_level,
    classify,
    natural_balance,
    parent_code,
    subsidiary_code,
)
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    EntryDraft,
    EntryOrigin,
    EntryStatus,
    EntryTotals,
    LineDraft,
)
from ledger_kernel.domain.report_layout import (
    DEFAULT_INCOME_STATEMENT_LAYOUT,
    BalanceSheetLayout,
    IncomeSection,
    IncomeStatementLayout,
    ResultBlock,
    SectionKind,
)
from ledger_kernel.domain.settings import (
    ChartSeedAccount,
    DefaultAccounts,
    FiscalSettings,
    PartyDisplayInfo,
    SubsidiaryRule,
)
from ledger_kernel.domain.totals import compute_entry_totals, validate_lines

__all__ = [
    "AccountType",
    "Classification",
    "Nature",
    "PartyType",
    "account_level",
    "classify",
    "natural_balance",
    "parent_code",
    "subsidiary_code",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "EntryDraft",
    "EntryOrigin",
    "EntryStatus",
    "EntryTotals",
    "LineDraft",
    "DEFAULT_INCOME_STATEMENT_LAYOUT",
    "BalanceSheetLayout",
    "IncomeSection",
    "IncomeStatementLayout",
    "ResultBlock",
    "SectionKind",
    "ChartSeedAccount",
    "DefaultAccounts",
    "FiscalSettings",
    "PartyDisplayInfo",
    "SubsidiaryRule",
    "compute_entry_totals",
    "validate_lines",
]
