"""
Auto-posting module: journal entries generated from business documents.

    SalesInvoicePayload     -> Dr customer / Cr sales + output VAT
    PurchaseInvoicePayload  -> Dr purchases + input VAT / Cr supplier
    ReceiptPayload          -> Dr treasury / Cr customer
    PaymentPayload          -> Dr supplier / Cr treasury
"""

from ledger_modules.auto_posting.models import (
    PaymentPayload,
    PurchaseInvoicePayload,
    ReceiptPayload,
    SalesInvoicePayload,
    VatLine,
)
from ledger_modules.auto_posting.rules import (
    InvoiceAccounts,
    build_payment_entry,
    build_purchase_invoice_entry,
    build_receipt_entry,
    build_sales_invoice_entry,
)
from ledger_modules.auto_posting.service import AutoPostingService

__all__ = [
    "AutoPostingService",
    "InvoiceAccounts",
    "PaymentPayload",
    "PurchaseInvoicePayload",
    "ReceiptPayload",
    "SalesInvoicePayload",
    "VatLine",
    "build_payment_entry",
    "build_purchase_invoice_entry",
    "build_receipt_entry",
    "build_sales_invoice_entry",
]
