"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only query access to journal entries and their lines.
    Converts ORM models to frozen DTOs for the outside world; services use
    the *_model lookups that return ORM rows.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: no mutations performed on any queried data.
    - Lines are sorted by line_no; listings by (entry_date, number).
    - Listing totals count the whole filtered set, independent of the page.

Failure modes:
    - Returns None or an empty page when nothing matches (never raises on
      absence of data).
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import exists, func, select

from ledger_kernel.domain.classification import PartyType
from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class JournalLineDTO:
    """Data transfer object for a journal line."""

    id: UUID
    line_no: int
    account_id: UUID
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    memo: str | None
    party_id: str | None
    party_type: PartyType | None
    party_name: str | None
    party_tax_id: str | None
    document_ref: str | None
    due_date: date | None


@dataclass(frozen=True)
class JournalEntryDTO:
    """Data transfer object for a journal entry."""

    id: UUID
    number: int | None
    entry_date: date
    period: int
    fiscal_year: int
    description: str
    total_debit: Decimal
    total_credit: Decimal
    difference: Decimal
    is_balanced: bool
    origin: EntryOrigin
    origin_id: str | None
    origin_reference: str | None
    status: EntryStatus
    locked: bool
    posted_at: datetime | None
    voided_by_entry_id: UUID | None
    voids_entry_id: UUID | None
    void_reason: str | None
    voided_at: datetime | None
    lines: tuple[JournalLineDTO, ...]

    @classmethod
    def from_model(cls, entry: JournalEntry) -> "JournalEntryDTO":
        return cls(
            id=entry.id,
            number=entry.number,
            entry_date=entry.entry_date,
            period=entry.period,
            fiscal_year=entry.fiscal_year,
            description=entry.description,
            total_debit=entry.total_debit,
            total_credit=entry.total_credit,
            difference=entry.difference,
            is_balanced=entry.is_balanced,
            origin=EntryOrigin(entry.origin),
            origin_id=entry.origin_id,
            origin_reference=entry.origin_reference,
            status=EntryStatus(entry.status),
            locked=entry.locked,
            posted_at=entry.posted_at,
            voided_by_entry_id=entry.voided_by_entry_id,
            voids_entry_id=entry.voids_entry_id,
            void_reason=entry.void_reason,
            voided_at=entry.voided_at,
            lines=tuple(
                JournalLineDTO(
                    id=line.id,
                    line_no=line.line_no,
                    account_id=line.account_id,
                    account_code=line.account_code,
                    account_name=line.account_name,
                    debit=line.debit,
                    credit=line.credit,
                    memo=line.memo,
                    party_id=line.party_id,
                    party_type=PartyType(line.party_type) if line.party_type else None,
                    party_name=line.party_name,
                    party_tax_id=line.party_tax_id,
                    document_ref=line.document_ref,
                    due_date=line.due_date,
                )
                for line in entry.lines
            ),
        )


@dataclass(frozen=True)
class EntryFilter:
    """Filters for journal entry listings.  All criteria are ANDed."""

    date_from: date | None = None
    date_to: date | None = None
    fiscal_year: int | None = None
    period: int | None = None
    account_prefix: str | None = None
    origin: EntryOrigin | None = None
    status: EntryStatus | None = None
    search: str | None = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class EntryPage:
    """One page of a journal entry listing."""

    items: tuple[JournalEntryDTO, ...]
    total: int
    page: int
    page_size: int
    pages: int = field(default=0)


class JournalSelector(BaseSelector):
    """Selector for journal entry queries."""

    def get_model(self, entry_id: UUID) -> JournalEntry | None:
        return self.session.get(JournalEntry, entry_id)

    def find_by_origin(self, origin: EntryOrigin, origin_id: str) -> JournalEntry | None:
        """Entry produced by a source document, whatever its status."""
        return self.session.execute(
            select(JournalEntry).where(
                JournalEntry.origin == EntryOrigin(origin).value,
                JournalEntry.origin_id == str(origin_id),
            )
        ).scalar_one_or_none()

    def get_entry(self, entry_id: UUID) -> JournalEntryDTO | None:
        entry = self.get_model(entry_id)
        return JournalEntryDTO.from_model(entry) if entry is not None else None

    def get_by_origin(self, origin: EntryOrigin, origin_id: str) -> JournalEntryDTO | None:
        entry = self.find_by_origin(origin, origin_id)
        return JournalEntryDTO.from_model(entry) if entry is not None else None

    def max_number(self, fiscal_year: int) -> int:
        """Highest entry number used in a fiscal year (0 if none)."""
        value = self.session.execute(
            select(func.max(JournalEntry.number)).where(
                JournalEntry.fiscal_year == fiscal_year
            )
        ).scalar_one_or_none()
        return value or 0

    def max_number_overall(self) -> int:
        value = self.session.execute(select(func.max(JournalEntry.number))).scalar_one_or_none()
        return value or 0

    def list_entries(self, filters: EntryFilter | None = None) -> EntryPage:
        """
        List entries matching filters, newest first, one page at a time.

        Args:
            filters: Criteria and pagination; defaults to the first page of
                everything.

        Returns:
            EntryPage with the page items and the filtered total.
        """
        filters = filters or EntryFilter()
        page = max(filters.page, 1)
        page_size = max(filters.page_size, 1)

        query = select(JournalEntry)
        count_query = select(func.count(JournalEntry.id))
        for clause in self._conditions(filters):
            query = query.where(clause)
            count_query = count_query.where(clause)

        total = self.session.execute(count_query).scalar_one()
        rows = self.session.execute(
            query.order_by(
                JournalEntry.entry_date.desc(),
                JournalEntry.number.desc(),
                JournalEntry.created_at.desc(),
            )
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).scalars()

        return EntryPage(
            items=tuple(JournalEntryDTO.from_model(entry) for entry in rows),
            total=total,
            page=page,
            page_size=page_size,
            pages=math.ceil(total / page_size) if total else 0,
        )

    @staticmethod
    def _conditions(filters: EntryFilter) -> list:
        conditions = []
        if filters.date_from is not None:
            conditions.append(JournalEntry.entry_date >= filters.date_from)
        if filters.date_to is not None:
            conditions.append(JournalEntry.entry_date <= filters.date_to)
        if filters.fiscal_year is not None:
            conditions.append(JournalEntry.fiscal_year == filters.fiscal_year)
        if filters.period is not None:
            conditions.append(JournalEntry.period == filters.period)
        if filters.origin is not None:
            conditions.append(JournalEntry.origin == EntryOrigin(filters.origin).value)
        if filters.status is not None:
            conditions.append(JournalEntry.status == EntryStatus(filters.status).value)
        if filters.search:
            conditions.append(JournalEntry.description.ilike(f"%{filters.search}%"))
        if filters.account_prefix:
            conditions.append(
                exists().where(
                    JournalLine.entry_id == JournalEntry.id,
                    JournalLine.account_code.like(f"{filters.account_prefix}%"),
                )
            )
        return conditions
