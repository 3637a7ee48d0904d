"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable structures that flow into the posting pipeline: LineDraft and
    EntryDraft (what a caller or generator wants posted), EntryTotals (what
    the pure totals function computed), and the entry origin/status enums.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Free of ORM
    dependencies; services translate drafts into ORM rows.

Data flow:
    EntryDraft -> compute_entry_totals -> JournalEntry (persisted)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.classification import PartyType


class EntryOrigin(str, Enum):
    """What produced a journal entry."""

    MANUAL = "manual"
    SALES_INVOICE = "sales_invoice"
    PURCHASE_INVOICE = "purchase_invoice"
    RECEIPT = "receipt"
    PAYMENT = "payment"
    OPENING = "opening"
    CLOSING = "closing"
    ADJUSTMENT = "adjustment"


class EntryStatus(str, Enum):
    """Lifecycle of a journal entry."""

    DRAFT = "draft"
    POSTED = "posted"
    VOIDED = "voided"


@dataclass(frozen=True)
class LineDraft:
    """
    One requested journal line.

    Exactly one of debit/credit is expected to be non-zero; the posting
    pipeline enforces it.
    """

    account_code: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    memo: str | None = None
    party_id: str | None = None
    party_type: PartyType | None = None
    party_name: str | None = None
    party_tax_id: str | None = None
    document_ref: str | None = None
    due_date: date | None = None

    def swapped(self, memo: str | None = None) -> LineDraft:
        """Same line with debit and credit exchanged."""
        return LineDraft(
            account_code=self.account_code,
            debit=self.credit,
            credit=self.debit,
            memo=memo if memo is not None else self.memo,
            party_id=self.party_id,
            party_type=self.party_type,
            party_name=self.party_name,
            party_tax_id=self.party_tax_id,
            document_ref=self.document_ref,
            due_date=self.due_date,
        )


@dataclass(frozen=True)
class EntryDraft:
    """A journal entry as requested, before validation and numbering."""

    entry_date: date
    description: str
    lines: tuple[LineDraft, ...]
    origin: EntryOrigin = EntryOrigin.MANUAL
    origin_id: str | None = None
    origin_reference: str | None = None
    locked: bool = False

    def __post_init__(self) -> None:
        # Accept any sequence, store a tuple
        if not isinstance(self.lines, tuple):
            object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def fiscal_year(self) -> int:
        return self.entry_date.year

    @property
    def period(self) -> int:
        return self.entry_date.month


@dataclass(frozen=True)
class EntryTotals:
    """Totals of a set of lines, computed before anything is written."""

    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool
    line_count: int = 0
    account_codes: tuple[str, ...] = field(default_factory=tuple)
