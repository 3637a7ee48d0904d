"""
Configuration schema: frozen dataclasses mirroring the YAML files.

These are the parsed, validated shape of ``defaults.yaml`` and the chart
seed files.  They carry plain strings and numbers; ``bridges`` turns them
into kernel dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FiscalFlagsDef:
    """Feature flags of a ledger."""

    active_fiscal_year: int | None = None
    auto_posting_enabled: bool = True
    allow_unbalanced_entries: bool = False
    enforce_period_locks: bool = True


@dataclass(frozen=True)
class NumberingDef:
    """Journal numbering policy."""

    reset_yearly: bool = True
    next_entry_number: int = 1


@dataclass(frozen=True)
class DefaultAccountsDef:
    """Account codes by posting role, as written in YAML."""

    sales: str
    purchases: str
    vat_output: dict[str, str] = field(default_factory=dict)
    vat_output_generic: str = "4770"
    vat_input: dict[str, str] = field(default_factory=dict)
    vat_input_generic: str = "4720"
    withholding_receivable: str = "4730"
    withholding_payable: str = "4751"
    cash: str | None = None
    bank: str | None = None
    card: str | None = None


@dataclass(frozen=True)
class SubsidiaryRuleDef:
    party_type: str
    prefix: str
    length: int


@dataclass(frozen=True)
class IncomeSectionDef:
    key: str
    label: str
    kind: str
    block: str
    prefixes: tuple[str, ...]
    exclude_prefixes: tuple[str, ...] = ()


@dataclass(frozen=True)
class LedgerDefaultsDef:
    """Everything in defaults.yaml."""

    config_id: str
    version: int
    fiscal: FiscalFlagsDef
    numbering: NumberingDef
    default_accounts: DefaultAccountsDef
    subsidiary_rules: tuple[SubsidiaryRuleDef, ...]
    treasury_by_method: dict[str, str]
    income_statement: tuple[IncomeSectionDef, ...]
    checksum: str = ""


@dataclass(frozen=True)
class ChartAccountDef:
    code: str
    name: str
    type: str
    nature: str
    postable: bool


@dataclass(frozen=True)
class ChartDef:
    """A seed chart file."""

    chart: str
    accounts: tuple[ChartAccountDef, ...]
