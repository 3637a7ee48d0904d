"""
Config -> Kernel Bridges.

Functions that convert parsed configuration into kernel dataclasses.  They
live in ledger_config (the producer) because the kernel must NEVER import
ledger_config.

Usage:
    from ledger_config.bridges import build_fiscal_settings

    defaults = parse_defaults(load_yaml_file(path))
    settings = build_fiscal_settings(defaults, fallback_year=2024)
"""

from __future__ import annotations

from ledger_config.schema import ChartDef, LedgerDefaultsDef
from ledger_kernel.domain.classification import AccountType, Nature, PartyType
from ledger_kernel.domain.report_layout import (
    IncomeSection,
    IncomeStatementLayout,
    ResultBlock,
    SectionKind,
)
from ledger_kernel.domain.settings import (
    ChartSeedAccount,
    DefaultAccounts,
    FiscalSettings,
    SubsidiaryRule,
)


def build_default_accounts(defaults: LedgerDefaultsDef) -> DefaultAccounts:
    accounts = defaults.default_accounts
    return DefaultAccounts.from_dict(
        {
            "sales": accounts.sales,
            "purchases": accounts.purchases,
            "vat_output": accounts.vat_output,
            "vat_output_generic": accounts.vat_output_generic,
            "vat_input": accounts.vat_input,
            "vat_input_generic": accounts.vat_input_generic,
            "withholding_receivable": accounts.withholding_receivable,
            "withholding_payable": accounts.withholding_payable,
            "cash": accounts.cash,
            "bank": accounts.bank,
            "card": accounts.card,
        }
    )


def build_fiscal_settings(defaults: LedgerDefaultsDef, fallback_year: int) -> FiscalSettings:
    """
    Build FiscalSettings from parsed defaults.

    Args:
        defaults: Parsed defaults.yaml.
        fallback_year: Active fiscal year when the YAML leaves it null.

    Raises:
        ValueError: Unknown party type in subsidiary_rules.
    """
    return FiscalSettings(
        active_fiscal_year=defaults.fiscal.active_fiscal_year or fallback_year,
        auto_posting_enabled=defaults.fiscal.auto_posting_enabled,
        allow_unbalanced_entries=defaults.fiscal.allow_unbalanced_entries,
        enforce_period_locks=defaults.fiscal.enforce_period_locks,
        reset_numbering_yearly=defaults.numbering.reset_yearly,
        next_entry_number=defaults.numbering.next_entry_number,
        default_accounts=build_default_accounts(defaults),
        subsidiary_rules={
            PartyType(rule.party_type): SubsidiaryRule(prefix=rule.prefix, length=rule.length)
            for rule in defaults.subsidiary_rules
        },
        treasury_by_method=dict(defaults.treasury_by_method),
    )


def build_income_statement_layout(defaults: LedgerDefaultsDef) -> IncomeStatementLayout:
    return IncomeStatementLayout(
        sections=tuple(
            IncomeSection(
                key=section.key,
                label=section.label,
                kind=SectionKind(section.kind),
                block=ResultBlock(section.block),
                prefixes=section.prefixes,
                exclude_prefixes=section.exclude_prefixes,
            )
            for section in defaults.income_statement
        )
    )


def build_chart_seed(chart: ChartDef) -> tuple[ChartSeedAccount, ...]:
    return tuple(
        ChartSeedAccount(
            code=account.code,
            name=account.name,
            account_type=AccountType(account.type),
            nature=Nature(account.nature),
            postable=account.postable,
        )
        for account in chart.accounts
    )
