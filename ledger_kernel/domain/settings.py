"""
Settings -- fiscal configuration value objects.

Responsibility:
    Frozen snapshot of one ledger's fiscal configuration: feature flags,
    numbering policy, default-account mapping, subsidiary numbering rules
    and the payment-method -> treasury role map.  FiscalConfigService
    persists and loads it; JournalLedgerService and the generators only
    ever read a snapshot.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``ledger_config.bridges`` builds
    these from YAML; the kernel never reads configuration files itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Mapping

from ledger_kernel.domain.classification import AccountType, Nature, PartyType


def rate_key(rate: Decimal | int | str) -> str:
    """Canonical text form of a VAT rate: Decimal("21.00") -> "21"."""
    return format(Decimal(str(rate)).normalize(), "f")


@dataclass(frozen=True)
class SubsidiaryRule:
    """Subsidiary account numbering for one party type."""

    prefix: str
    length: int


@dataclass(frozen=True)
class DefaultAccounts:
    """Account codes used by the generators, by posting role."""

    sales: str = "700"
    purchases: str = "600"
    vat_output: Mapping[str, str] = field(default_factory=dict)
    vat_output_generic: str = "4770"
    vat_input: Mapping[str, str] = field(default_factory=dict)
    vat_input_generic: str = "4720"
    withholding_receivable: str = "4730"
    withholding_payable: str = "4751"
    cash: str | None = "5700"
    bank: str | None = "572"
    card: str | None = None

    def vat_output_for(self, rate: Decimal) -> str | None:
        return self.vat_output.get(rate_key(rate))

    def vat_input_for(self, rate: Decimal) -> str | None:
        return self.vat_input.get(rate_key(rate))

    def to_dict(self) -> dict[str, Any]:
        return {
            "sales": self.sales,
            "purchases": self.purchases,
            "vat_output": dict(self.vat_output),
            "vat_output_generic": self.vat_output_generic,
            "vat_input": dict(self.vat_input),
            "vat_input_generic": self.vat_input_generic,
            "withholding_receivable": self.withholding_receivable,
            "withholding_payable": self.withholding_payable,
            "cash": self.cash,
            "bank": self.bank,
            "card": self.card,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DefaultAccounts:
        values = dict(data)
        values["vat_output"] = {
            rate_key(k): str(v) for k, v in (values.get("vat_output") or {}).items()
        }
        values["vat_input"] = {
            rate_key(k): str(v) for k, v in (values.get("vat_input") or {}).items()
        }
        return cls(**values)


DEFAULT_SUBSIDIARY_RULES: Mapping[PartyType, SubsidiaryRule] = {
    PartyType.CUSTOMER: SubsidiaryRule(prefix="430", length=7),
    PartyType.SUPPLIER: SubsidiaryRule(prefix="400", length=7),
}

# Payment method -> treasury role (cash, bank, card)
DEFAULT_TREASURY_BY_METHOD: Mapping[str, str] = {
    "cash": "cash",
    "bank_transfer": "bank",
    "direct_debit": "bank",
    "cheque": "bank",
    "card": "card",
}


@dataclass(frozen=True)
class FiscalSettings:
    """
    Snapshot of a ledger's fiscal configuration.

    Guarantees:
        - Immutable; use ``with_changes`` to derive a modified copy.
    """

    active_fiscal_year: int
    auto_posting_enabled: bool = True
    allow_unbalanced_entries: bool = False
    enforce_period_locks: bool = True
    reset_numbering_yearly: bool = True
    next_entry_number: int = 1
    default_accounts: DefaultAccounts = field(default_factory=DefaultAccounts)
    subsidiary_rules: Mapping[PartyType, SubsidiaryRule] = field(
        default_factory=lambda: dict(DEFAULT_SUBSIDIARY_RULES)
    )
    treasury_by_method: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_TREASURY_BY_METHOD)
    )

    def subsidiary_rule(self, party_type: PartyType) -> SubsidiaryRule | None:
        """Numbering rule for a party type; None for types without subaccounts."""
        return self.subsidiary_rules.get(party_type) or DEFAULT_SUBSIDIARY_RULES.get(party_type)

    def with_changes(self, **changes: Any) -> FiscalSettings:
        return replace(self, **changes)


@dataclass(frozen=True)
class ChartSeedAccount:
    """One account of a seed chart (PGC 2007)."""

    code: str
    name: str
    account_type: AccountType
    nature: Nature
    postable: bool


@dataclass(frozen=True)
class PartyDisplayInfo:
    """Display data of a customer or supplier, cached on its subaccount."""

    name: str
    tax_id: str | None = None
