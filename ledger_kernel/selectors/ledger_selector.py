"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries over journal lines: point-in-time
    account balances, per-account aggregates for date ranges, chronological
    line listings and per-account movements.  These are the only queries
    the report engine runs.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Only effective entries count: status POSTED and not a compensating
      entry.  A voided original (status VOIDED) and its contra entry are
      both left out, which nets to the same result as counting both.
      Drafts never count.  include_voided=True brings both halves of every
      void pair back for journal listings.
    - Range bounds are inclusive; ``before`` bounds are exclusive.
    - All amounts are Decimal; SQL NULL sums come back as zero.

Failure modes:
    - Returns empty lists or zero balances when nothing matches.
    - balance_as_of() raises AccountNotFoundError for unknown codes.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.classification import AccountType, Nature, natural_balance
from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.base import BaseSelector

CODE_MAX_LENGTH = 20


@dataclass(frozen=True)
class AccountBalanceAsOf:
    """Point-in-time balance of one account."""

    account_code: str
    cutoff_date: date
    debit: Decimal
    credit: Decimal
    net_balance: Decimal


@dataclass(frozen=True)
class AccountTotalsRow:
    """Debit and credit sums of one account over a range."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    nature: Nature
    is_postable: bool
    debit: Decimal
    credit: Decimal
    line_count: int


@dataclass(frozen=True)
class LedgerLineRow:
    """A journal line joined with its entry's metadata."""

    entry_id: UUID
    number: int | None
    entry_date: date
    fiscal_year: int
    description: str
    origin: EntryOrigin
    status: EntryStatus
    line_no: int
    account_code: str
    account_name: str
    debit: Decimal
    credit: Decimal
    memo: str | None
    party_name: str | None
    document_ref: str | None


@dataclass(frozen=True)
class LineTotals:
    """Grand totals of a filtered line set."""

    total_debit: Decimal
    total_credit: Decimal
    entry_count: int
    line_count: int


def effective_entry_conditions(include_voided: bool = False) -> list:
    """Entry-level conditions selecting the lines that count."""
    if include_voided:
        return [JournalEntry.status.in_((EntryStatus.POSTED.value, EntryStatus.VOIDED.value))]
    return [
        JournalEntry.status == EntryStatus.POSTED.value,
        JournalEntry.voids_entry_id.is_(None),
    ]


class LedgerSelector(BaseSelector):
    """
    Selector for ledger aggregates.

    Contract:
        Every query joins journal lines to their entry and applies
        effective_entry_conditions().  Results are ordered by account code,
        or by (entry_date, number, line_no) for line listings.

    Non-goals:
        - Does not read the running balance columns on accounts; those
          are the always-current index, these are derived views.
    """

    # ------------------------------------------------------------------
    # Point-in-time balance
    # ------------------------------------------------------------------

    def balance_as_of(
        self,
        account_code: str,
        cutoff_date: date,
        fiscal_year: int | None = None,
    ) -> AccountBalanceAsOf:
        """
        Balance of an account from its lines dated on or before cutoff_date.

        Args:
            account_code: Exact account code.
            cutoff_date: Last entry date included.
            fiscal_year: Restrict to entries of this fiscal year.

        Raises:
            AccountNotFoundError: Unknown account code.
        """
        nature = self.session.execute(
            select(Account.nature).where(Account.code == account_code)
        ).scalar_one_or_none()
        if nature is None:
            raise AccountNotFoundError(account_code)

        query = (
            select(func.sum(JournalLine.debit), func.sum(JournalLine.credit))
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .where(
                JournalLine.account_code == account_code,
                JournalLine.entry_date <= cutoff_date,
                *effective_entry_conditions(),
            )
        )
        if fiscal_year is not None:
            query = query.where(JournalLine.fiscal_year == fiscal_year)

        debit, credit = self.session.execute(query).one()
        debit = debit or ZERO
        credit = credit or ZERO
        return AccountBalanceAsOf(
            account_code=account_code,
            cutoff_date=cutoff_date,
            debit=debit,
            credit=credit,
            net_balance=natural_balance(Nature(nature), debit, credit),
        )

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def account_totals(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        before: date | None = None,
        code_from: str | None = None,
        code_to: str | None = None,
        code_prefix: str | None = None,
    ) -> list[AccountTotalsRow]:
        """
        Debit/credit sums per account over a date range.

        Args:
            date_from: First entry date included.
            date_to: Last entry date included.
            before: Only lines dated strictly before this date (opening
                balances).
            code_from: Lowest account code included (string comparison).
            code_to: Highest account code included; codes extending it
                (e.g. "4300001" for code_to "430") are included too.
            code_prefix: Only codes starting with this prefix.

        Returns:
            One row per account with at least one matching line, by code.
        """
        debit_sum = func.sum(JournalLine.debit).label("debit")
        credit_sum = func.sum(JournalLine.credit).label("credit")
        line_count = func.count(JournalLine.id).label("line_count")

        query = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                Account.nature,
                Account.is_postable,
                debit_sum,
                credit_sum,
                line_count,
            )
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .join(Account, JournalLine.account_id == Account.id)
            .where(*effective_entry_conditions())
            .where(*self._line_conditions(date_from, date_to, before))
            .where(*self._code_conditions(code_from, code_to, code_prefix))
            .group_by(
                Account.id,
                Account.code,
                Account.name,
                Account.account_type,
                Account.nature,
                Account.is_postable,
            )
            .order_by(Account.code)
        )

        return [
            AccountTotalsRow(
                account_id=row.id,
                account_code=row.code,
                account_name=row.name,
                account_type=AccountType(row.account_type),
                nature=Nature(row.nature),
                is_postable=row.is_postable,
                debit=row.debit or ZERO,
                credit=row.credit or ZERO,
                line_count=row.line_count,
            )
            for row in self.session.execute(query).all()
        ]

    # ------------------------------------------------------------------
    # Line listings
    # ------------------------------------------------------------------

    def journal_lines(
        self,
        date_from: date,
        date_to: date,
        account_prefix: str | None = None,
        origin: EntryOrigin | None = None,
        include_voided: bool = False,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[LedgerLineRow]:
        """Lines in chronological order (entry_date, number, line_no)."""
        query = self._line_listing_query(date_from, date_to, account_prefix, origin, include_voided)
        query = query.order_by(
            JournalEntry.entry_date,
            JournalEntry.number,
            JournalEntry.id,
            JournalLine.line_no,
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_row(line, entry) for line, entry in self.session.execute(query).all()]

    def journal_line_totals(
        self,
        date_from: date,
        date_to: date,
        account_prefix: str | None = None,
        origin: EntryOrigin | None = None,
        include_voided: bool = False,
    ) -> LineTotals:
        """Grand totals over the whole filtered line set (no pagination)."""
        conditions = self._listing_conditions(date_from, date_to, account_prefix, origin, include_voided)
        debit, credit, entries, lines = self.session.execute(
            select(
                func.sum(JournalLine.debit),
                func.sum(JournalLine.credit),
                func.count(func.distinct(JournalLine.entry_id)),
                func.count(JournalLine.id),
            )
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .where(*conditions)
        ).one()
        return LineTotals(
            total_debit=debit or ZERO,
            total_credit=credit or ZERO,
            entry_count=entries or 0,
            line_count=lines or 0,
        )

    def account_movements(
        self,
        account_code: str,
        date_from: date,
        date_to: date,
    ) -> list[LedgerLineRow]:
        """In-range lines of one account ordered by (entry_date, number, line_no)."""
        query = (
            select(JournalLine, JournalEntry)
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .where(
                JournalLine.account_code == account_code,
                JournalLine.entry_date >= date_from,
                JournalLine.entry_date <= date_to,
                *effective_entry_conditions(),
            )
            .order_by(
                JournalLine.entry_date,
                JournalEntry.number,
                JournalEntry.id,
                JournalLine.line_no,
            )
        )
        return [self._to_row(line, entry) for line, entry in self.session.execute(query).all()]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _line_listing_query(self, date_from, date_to, account_prefix, origin, include_voided):
        conditions = self._listing_conditions(date_from, date_to, account_prefix, origin, include_voided)
        return (
            select(JournalLine, JournalEntry)
            .join(JournalEntry, JournalLine.entry_id == JournalEntry.id)
            .where(*conditions)
        )

    def _listing_conditions(self, date_from, date_to, account_prefix, origin, include_voided) -> list:
        conditions = effective_entry_conditions(include_voided)
        conditions.extend(self._line_conditions(date_from, date_to, None))
        if account_prefix:
            conditions.append(JournalLine.account_code.like(f"{account_prefix}%"))
        if origin is not None:
            conditions.append(JournalEntry.origin == EntryOrigin(origin).value)
        return conditions

    @staticmethod
    def _line_conditions(date_from, date_to, before) -> list:
        conditions = []
        if date_from is not None:
            conditions.append(JournalLine.entry_date >= date_from)
        if date_to is not None:
            conditions.append(JournalLine.entry_date <= date_to)
        if before is not None:
            conditions.append(JournalLine.entry_date < before)
        return conditions

    @staticmethod
    def _code_conditions(code_from, code_to, code_prefix) -> list:
        conditions = []
        if code_from:
            conditions.append(Account.code >= code_from)
        if code_to:
            # "430" as upper bound also covers "4300001"
            conditions.append(Account.code <= code_to.ljust(CODE_MAX_LENGTH, "9"))
        if code_prefix:
            conditions.append(Account.code.like(f"{code_prefix}%"))
        return conditions

    @staticmethod
    def _to_row(line: JournalLine, entry: JournalEntry) -> LedgerLineRow:
        return LedgerLineRow(
            entry_id=entry.id,
            number=entry.number,
            entry_date=entry.entry_date,
            fiscal_year=entry.fiscal_year,
            description=entry.description,
            origin=EntryOrigin(entry.origin),
            status=EntryStatus(entry.status),
            line_no=line.line_no,
            account_code=line.account_code,
            account_name=line.account_name,
            debit=line.debit,
            credit=line.credit,
            memo=line.memo,
            party_name=line.party_name,
            document_ref=line.document_ref,
        )
