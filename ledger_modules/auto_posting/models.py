"""
Auto-posting Payloads (``ledger_modules.auto_posting.models``).

Responsibility
--------------
Frozen dataclass value objects describing the business documents that
produce journal entries: sales and purchase invoices, customer receipts
and supplier payments.  The invoicing and treasury modules that own these
documents build a payload and hand it to ``AutoPostingService``.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields are ``Decimal``; floats are rejected at
  construction.
* No amount is negative.

Failure modes
-------------
* ``ValidationError`` for negative amounts or a missing document id.
* ``TypeError`` for float amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ledger_kernel.db.types import ZERO, to_money
from ledger_kernel.exceptions import ValidationError


def _money_field(instance, name: str) -> None:
    value = to_money(getattr(instance, name))
    if value < ZERO:
        raise ValidationError(f"{name} cannot be negative ({value})", field=name)
    object.__setattr__(instance, name, value)


def _require_id(value: str, name: str) -> None:
    if not value or not str(value).strip():
        raise ValidationError(f"{name} is required", field=name)


@dataclass(frozen=True)
class VatLine:
    """VAT breakdown of one rate on an invoice."""

    rate: Decimal
    base: Decimal
    amount: Decimal

    def __post_init__(self) -> None:
        for name in ("rate", "base", "amount"):
            _money_field(self, name)


@dataclass(frozen=True)
class _InvoicePayload:
    invoice_id: str
    code: str
    invoice_date: date
    party_id: str
    party_name: str
    net_amount: Decimal
    total_amount: Decimal
    vat_breakdown: tuple[VatLine, ...] = ()
    withholding_amount: Decimal = ZERO
    withholding_rate: Decimal | None = None
    party_tax_id: str | None = None

    def __post_init__(self) -> None:
        _require_id(self.invoice_id, "invoice_id")
        _require_id(self.party_id, "party_id")
        for name in ("net_amount", "total_amount", "withholding_amount"):
            _money_field(self, name)
        if self.withholding_rate is not None:
            _money_field(self, "withholding_rate")
        if not isinstance(self.vat_breakdown, tuple):
            object.__setattr__(self, "vat_breakdown", tuple(self.vat_breakdown))

    @property
    def vat_total(self) -> Decimal:
        return sum((line.amount for line in self.vat_breakdown), ZERO)

    @property
    def party_amount(self) -> Decimal:
        """What the customer owes or the supplier is owed after withholding."""
        return self.total_amount - self.withholding_amount


@dataclass(frozen=True)
class SalesInvoicePayload(_InvoicePayload):
    """An issued sales invoice."""


@dataclass(frozen=True)
class PurchaseInvoicePayload(_InvoicePayload):
    """A received supplier invoice."""


@dataclass(frozen=True)
class _TreasuryPayload:
    document_id: str
    payment_date: date
    amount: Decimal
    party_id: str
    party_name: str
    payment_method: str
    reference: str | None = None
    party_tax_id: str | None = None
    bank_account_id: str | None = None
    invoice_code: str | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        _require_id(self.document_id, "document_id")
        _require_id(self.party_id, "party_id")
        _money_field(self, "amount")

    @property
    def document_ref(self) -> str | None:
        return self.reference or self.invoice_code


@dataclass(frozen=True)
class ReceiptPayload(_TreasuryPayload):
    """Money received from a customer."""


@dataclass(frozen=True)
class PaymentPayload(_TreasuryPayload):
    """Money paid to a supplier."""
