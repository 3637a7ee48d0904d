"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    append-mostly book of record.
Architecture position: Kernel > Models.  May import from db/, domain/ and
    models/account.py.

Invariants enforced:
    - (fiscal_year, number) is unique (uq_journal_year_number).  Drafts
      carry no number.
    - (origin, origin_id) is unique (uq_journal_origin): a source document
      produces at most one entry.
    - total_debit / total_credit equal the sums of the lines; they are
      computed by the pure totals function before insert.
    - A posted entry is never edited.  Voiding stamps status, back-link and
      audit fields on the original and posts a compensating entry.

Audit relevance:
    voided_by_entry_id (on the original) and voids_entry_id (on the contra
    entry) make every void traceable in both directions.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.classification import PartyType
from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus


class JournalEntry(TrackedBase):
    """
    Journal entry header (asiento).

    Contract:
        Created fully validated by JournalLedgerService.  Once posted its
        lines and amounts never change; only the void fields are stamped.

    Guarantees:
        - period and fiscal_year are derived from entry_date.
        - difference = total_debit - total_credit.

    Non-goals:
        - Does not enforce balance at the ORM level; is_balanced records the
          result of the posting-time check (unbalanced entries exist only
          when the ledger allows them).
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("fiscal_year", "number", name="uq_journal_year_number"),
        UniqueConstraint("origin", "origin_id", name="uq_journal_origin"),
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_status", "status"),
    )

    number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Month 1-12
    period: Mapped[int] = mapped_column(Integer, nullable=False)

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    total_debit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    total_credit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    difference: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    is_balanced: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    origin: Mapped[EntryOrigin] = mapped_column(
        String(30), nullable=False, default=EntryOrigin.MANUAL.value
    )
    origin_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Human reference of the source document (invoice code, receipt ref)
    origin_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[EntryStatus] = mapped_column(
        String(10), nullable=False, default=EntryStatus.DRAFT.value
    )

    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    posted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Void back-links
    voided_by_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )
    voids_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )
    void_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    voided_at: Mapped[datetime | None] = mapped_column(nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_no",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.fiscal_year}/{self.number} status={self.status}>"

    @property
    def is_posted(self) -> bool:
        return self.status == EntryStatus.POSTED

    @property
    def is_voided(self) -> bool:
        return self.status == EntryStatus.VOIDED

    @property
    def is_draft(self) -> bool:
        return self.status == EntryStatus.DRAFT


class JournalLine(TrackedBase):
    """
    One debit or credit line of a journal entry.

    Contract:
        References exactly one postable account; caches its code and name
        as they were at posting time.  Exactly one of debit/credit is
        non-zero.

    Guarantees:
        - entry_date and fiscal_year mirror the parent entry so ledger
          range scans by (account_code, entry_date) need no join.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "entry_id"),
        Index("idx_line_account_date", "account_code", "entry_date"),
        Index("idx_line_account_id", "account_id"),
    )

    entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=False
    )

    line_no: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("accounts.id"), nullable=False
    )
    account_code: Mapped[str] = mapped_column(String(20), nullable=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)

    debit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    credit: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)

    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    party_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    party_type: Mapped[PartyType | None] = mapped_column(String(20), nullable=True)
    party_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    party_tax_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    document_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)

    entry: Mapped[JournalEntry] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.account_code} D={self.debit} C={self.credit}>"
