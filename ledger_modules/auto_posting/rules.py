"""
Pure line builders for generated journal entries.

Each builder turns a payload plus already-resolved account codes into an
EntryDraft.  ZERO I/O: account resolution, idempotence and posting are the
service's job.

    Sales invoice       Dr customer (total - withholding)
                        Dr withholding receivable (withholding)
                        Cr sales (net)
                        Cr output VAT, one line per rate with a non-zero amount
    Purchase invoice    Dr purchases (net)
                        Dr input VAT, one line per rate with a non-zero amount
                        Cr supplier (total - withholding)
                        Cr withholding payable (withholding)
    Receipt             Dr treasury / Cr customer
    Payment             Dr supplier / Cr treasury

Lines with a zero amount are left out.  The builders never balance an
inconsistent payload; the service checks the totals.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.classification import PartyType
from ledger_kernel.domain.dtos import EntryDraft, EntryOrigin, LineDraft
from ledger_kernel.domain.settings import rate_key
from ledger_modules.auto_posting.models import (
    PaymentPayload,
    PurchaseInvoicePayload,
    ReceiptPayload,
    SalesInvoicePayload,
)


@dataclass(frozen=True)
class InvoiceAccounts:
    """Resolved account codes for one invoice entry."""

    party: str
    revenue_or_expense: str
    withholding: str
    # rate key ("21") -> VAT account code
    vat_by_rate: Mapping[str, str] = field(default_factory=dict)


def _withholding_memo(withholding_rate: Decimal | None, code: str) -> str:
    if withholding_rate is None:
        return f"Retención IRPF Fra. {code}"
    return f"Retención IRPF {rate_key(withholding_rate)}% Fra. {code}"


def _vat_lines(payload, accounts: InvoiceAccounts, on_debit: bool) -> list[LineDraft]:
    lines = []
    for vat in payload.vat_breakdown:
        if vat.amount <= ZERO:
            continue
        key = rate_key(vat.rate)
        lines.append(
            LineDraft(
                account_code=accounts.vat_by_rate[key],
                debit=vat.amount if on_debit else ZERO,
                credit=ZERO if on_debit else vat.amount,
                memo=f"IVA {key}% Fra. {payload.code}",
                document_ref=payload.code,
            )
        )
    return lines


def _party_line(
    payload,
    account_code: str,
    party_type: PartyType,
    memo: str,
    document_ref: str | None,
    debit: Decimal = ZERO,
    credit: Decimal = ZERO,
) -> LineDraft:
    return LineDraft(
        account_code=account_code,
        debit=debit,
        credit=credit,
        memo=memo,
        party_id=str(payload.party_id),
        party_type=party_type,
        party_name=payload.party_name,
        party_tax_id=payload.party_tax_id,
        document_ref=document_ref,
    )


def build_sales_invoice_entry(payload: SalesInvoicePayload, accounts: InvoiceAccounts) -> EntryDraft:
    lines: list[LineDraft] = []
    if payload.party_amount > ZERO:
        lines.append(
            _party_line(
                payload,
                accounts.party,
                PartyType.CUSTOMER,
                memo=f"Fra. {payload.code} - {payload.party_name}",
                document_ref=payload.code,
                debit=payload.party_amount,
            )
        )
    if payload.withholding_amount > ZERO:
        lines.append(
            LineDraft(
                account_code=accounts.withholding,
                debit=payload.withholding_amount,
                memo=_withholding_memo(payload.withholding_rate, payload.code),
                document_ref=payload.code,
            )
        )
    if payload.net_amount > ZERO:
        lines.append(
            LineDraft(
                account_code=accounts.revenue_or_expense,
                credit=payload.net_amount,
                memo=f"Ventas Fra. {payload.code}",
                document_ref=payload.code,
            )
        )
    lines.extend(_vat_lines(payload, accounts, on_debit=False))

    return EntryDraft(
        entry_date=payload.invoice_date,
        description=f"Fra. venta {payload.code} - {payload.party_name}",
        lines=tuple(lines),
        origin=EntryOrigin.SALES_INVOICE,
        origin_id=str(payload.invoice_id),
        origin_reference=payload.code,
        locked=True,
    )


def build_purchase_invoice_entry(payload: PurchaseInvoicePayload, accounts: InvoiceAccounts) -> EntryDraft:
    lines: list[LineDraft] = []
    if payload.net_amount > ZERO:
        lines.append(
            LineDraft(
                account_code=accounts.revenue_or_expense,
                debit=payload.net_amount,
                memo=f"Compras Fra. {payload.code}",
                document_ref=payload.code,
            )
        )
    lines.extend(_vat_lines(payload, accounts, on_debit=True))
    if payload.party_amount > ZERO:
        lines.append(
            _party_line(
                payload,
                accounts.party,
                PartyType.SUPPLIER,
                memo=f"Fra. {payload.code} - {payload.party_name}",
                document_ref=payload.code,
                credit=payload.party_amount,
            )
        )
    if payload.withholding_amount > ZERO:
        lines.append(
            LineDraft(
                account_code=accounts.withholding,
                credit=payload.withholding_amount,
                memo=_withholding_memo(payload.withholding_rate, payload.code),
                document_ref=payload.code,
            )
        )

    return EntryDraft(
        entry_date=payload.invoice_date,
        description=f"Fra. compra {payload.code} - {payload.party_name}",
        lines=tuple(lines),
        origin=EntryOrigin.PURCHASE_INVOICE,
        origin_id=str(payload.invoice_id),
        origin_reference=payload.code,
        locked=True,
    )


def receipt_concept(payload: ReceiptPayload) -> str:
    if payload.description:
        return payload.description
    if payload.invoice_code:
        return f"Cobro Fra. {payload.invoice_code}"
    return f"Cobro cliente {payload.party_name}"


def payment_concept(payload: PaymentPayload) -> str:
    if payload.description:
        return payload.description
    if payload.invoice_code:
        return f"Pago Fra. {payload.invoice_code}"
    return f"Pago proveedor {payload.party_name}"


def build_receipt_entry(payload: ReceiptPayload, treasury_code: str, customer_code: str) -> EntryDraft:
    concept = receipt_concept(payload)
    lines = (
        LineDraft(
            account_code=treasury_code,
            debit=payload.amount,
            memo=concept,
            document_ref=payload.document_ref,
        ),
        _party_line(
            payload,
            customer_code,
            PartyType.CUSTOMER,
            memo=concept,
            document_ref=payload.document_ref,
            credit=payload.amount,
        ),
    )
    return EntryDraft(
        entry_date=payload.payment_date,
        description=concept,
        lines=lines,
        origin=EntryOrigin.RECEIPT,
        origin_id=str(payload.document_id),
        origin_reference=payload.reference,
        locked=True,
    )


def build_payment_entry(payload: PaymentPayload, treasury_code: str, supplier_code: str) -> EntryDraft:
    concept = payment_concept(payload)
    lines = (
        _party_line(
            payload,
            supplier_code,
            PartyType.SUPPLIER,
            memo=concept,
            document_ref=payload.document_ref,
            debit=payload.amount,
        ),
        LineDraft(
            account_code=treasury_code,
            credit=payload.amount,
            memo=concept,
            document_ref=payload.document_ref,
        ),
    )
    return EntryDraft(
        entry_date=payload.payment_date,
        description=concept,
        lines=lines,
        origin=EntryOrigin.PAYMENT,
        origin_id=str(payload.document_id),
        origin_reference=payload.reference,
        locked=True,
    )
