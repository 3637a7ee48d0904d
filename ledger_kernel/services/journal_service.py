"""
JournalLedgerService -- the posting pipeline.

Responsibility:
    Validates, numbers and persists journal entries, then applies one
    balance delta per line.  Voids posted entries with a forward
    compensating entry.  Keeps draft entries for later posting.

Architecture position:
    Kernel > Services.  The only caller of AccountBalanceIndex.  Called by
    the auto-posting generators and by manual-entry callers.

    post_entry pipeline:
        1. validate_lines (pure): >= 2 lines, amounts >= 0, one side each
        2. resolve accounts: exist, postable, active
        3. compute_entry_totals (pure), balance check
        4. period lock check
        5. origin uniqueness check
        6. savepoint: allocate number, insert entry + lines
        7. AccountBalanceIndex.apply_delta per line

Invariants enforced:
    - No balance column changes before the entry is validated and flushed.
    - total_debit / total_credit / difference / is_balanced come from the
      pure totals function, never from persistence hooks.
    - Unbalanced entries are rejected unless the ledger allows them; when
      allowed they are stored with is_balanced=False and the difference.
    - Numbers are unique per fiscal year and allocated by SequenceService.
    - Posted entries are never edited; a void posts the swapped lines as a
      locked adjustment entry and back-links both entries.

Failure modes:
    - ValidationError, AccountNotFoundError, NonPostableAccountError,
      UnbalancedEntryError, ClosedPeriodError, DuplicateOriginError,
      EntryNotFoundError, AlreadyVoidedError, EntryNotDraftError.
    - ConcurrencyConflictError if the allocated number collides with a
      stored one; the savepoint gives the number back.
    All are raised before any balance is touched.

Audit relevance:
    Every posting and void is logged with entry id, number and totals.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.domain.classification import PartyType
from ledger_kernel.domain.dtos import (
    EntryDraft,
    EntryOrigin,
    EntryStatus,
    EntryTotals,
    LineDraft,
)
from ledger_kernel.domain.settings import FiscalSettings
from ledger_kernel.domain.totals import compute_entry_totals, contra_lines, validate_lines
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    AlreadyVoidedError,
    ClosedPeriodError,
    ConcurrencyConflictError,
    DuplicateOriginError,
    EntryNotDraftError,
    EntryNotFoundError,
    NonPostableAccountError,
    UnbalancedEntryError,
    ValidationError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.balance_service import AccountBalanceIndex
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.fiscal_config_service import FiscalConfigService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")

VOID_MEMO_PREFIX = "Anulación: "
VOID_ORIGIN_PREFIX = "void:"


class JournalLedgerService(BaseService):
    """
    Service for posting and voiding journal entries.

    Contract:
        ``post_entry(draft)`` returns the persisted, numbered JournalEntry
        with status POSTED, or raises without side effects on balances.
        The caller commits.

    Guarantees:
        - One apply_delta call per line, exactly once, after the flush.

    Non-goals:
        - Does not build lines from business documents (generators do).
        - Does not commit.
    """

    def __init__(
        self,
        session,
        clock=None,
        actor_id=None,
        config_service: FiscalConfigService | None = None,
    ):
        super().__init__(session, clock, actor_id)
        self._config = config_service or FiscalConfigService(session, self.clock, self.actor_id)
        self._accounts = AccountSelector(session)
        self._journal = JournalSelector(session)
        self._balances = AccountBalanceIndex(session, self.clock, self.actor_id)
        self._sequences = SequenceService(session)

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def post_entry(self, draft: EntryDraft) -> JournalEntry:
        """
        Validate, number, persist and apply balances for one entry.

        Args:
            draft: Entry to post.

        Returns:
            The posted JournalEntry.
        """
        with LogContext.bind(origin_id=draft.origin_id):
            return self._post(draft)

    def _post(self, draft: EntryDraft, voids_entry_id: UUID | None = None) -> JournalEntry:
        settings = self._config.get_settings()
        accounts, totals = self._validate(draft, settings)
        self._check_origin(draft)

        entry = self._build_entry(draft, totals, accounts)
        entry.voids_entry_id = voids_entry_id
        self._number_and_flush(entry, settings, draft)

        self._apply_balances(entry)
        self._log_posted(entry, totals)
        return entry

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def save_draft(self, draft: EntryDraft) -> JournalEntry:
        """
        Store an entry as a draft: no number, no balance effect.

        Lines and accounts are validated; balance and period locks are
        checked when the draft is posted.
        """
        validate_lines(draft.lines)
        self._require_description(draft.description)
        accounts = self._resolve_accounts(draft.lines)
        self._check_origin(draft)

        entry = self._build_entry(draft, compute_entry_totals(draft.lines), accounts)
        entry.status = EntryStatus.DRAFT.value
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "journal_draft_saved",
            extra={"entry_id": str(entry.id), "line_count": len(entry.lines)},
        )
        return entry

    def post_draft(self, entry_id: UUID) -> JournalEntry:
        """
        Post a stored draft through the full validation path.

        Raises:
            EntryNotFoundError: Unknown entry.
            EntryNotDraftError: Entry is not a draft.
        """
        entry = self._journal.get_model(entry_id)
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        if entry.status != EntryStatus.DRAFT:
            raise EntryNotDraftError(str(entry_id), entry.status)

        draft = EntryDraft(
            entry_date=entry.entry_date,
            description=entry.description,
            lines=tuple(self._line_draft(line) for line in entry.lines),
            origin=EntryOrigin(entry.origin),
            origin_id=entry.origin_id,
            origin_reference=entry.origin_reference,
            locked=entry.locked,
        )
        settings = self._config.get_settings()
        accounts, totals = self._validate(draft, settings)

        # Account names may have changed since the draft was saved
        for line in entry.lines:
            line.account_name = accounts[line.account_code].name

        entry.updated_by_id = self.actor_id
        self._number_and_flush(entry, settings)

        self._apply_balances(entry)
        self._log_posted(entry, totals)
        return entry

    # ------------------------------------------------------------------
    # Voiding
    # ------------------------------------------------------------------

    def void_entry(
        self,
        entry_id: UUID,
        reason: str,
        *,
        void_date: date | None = None,
    ) -> JournalEntry:
        """
        Void a posted entry with a compensating entry.

        The contra entry swaps every line's debit and credit, has origin
        ADJUSTMENT, is locked, and is dated void_date (default: the
        original's date, which must stay in the same fiscal year).

        Args:
            entry_id: Entry to void.
            reason: Why the entry is voided (required).
            void_date: Date of the compensating entry.

        Returns:
            The compensating JournalEntry.

        Raises:
            EntryNotFoundError: Unknown entry.
            AlreadyVoidedError: Entry already voided or compensated.
            ValidationError: Empty reason, draft or compensating entry, or
                a void date outside the original's fiscal year.
        """
        if not reason or not reason.strip():
            raise ValidationError("A void reason is required", field="reason")

        original = self._journal.get_model(entry_id)
        if original is None:
            raise EntryNotFoundError(str(entry_id))
        if original.status == EntryStatus.VOIDED or original.voided_by_entry_id is not None:
            raise AlreadyVoidedError(str(original.id), original.number)
        if original.status != EntryStatus.POSTED:
            raise ValidationError(
                f"Only posted entries can be voided; entry is {original.status}",
                field="entry_id",
            )
        if original.voids_entry_id is not None:
            raise ValidationError(
                "A compensating entry cannot itself be voided", field="entry_id"
            )
        if self._has_compensation(original.id):
            raise AlreadyVoidedError(str(original.id), original.number)

        contra_date = void_date or original.entry_date
        if contra_date.year != original.fiscal_year:
            raise ValidationError(
                f"Void date {contra_date} is outside fiscal year {original.fiscal_year}",
                field="void_date",
            )

        reason = reason.strip()
        draft = EntryDraft(
            entry_date=contra_date,
            description=f"Anulación asiento {original.number}: {reason}",
            lines=contra_lines(
                [self._line_draft(line) for line in original.lines],
                memo_prefix=VOID_MEMO_PREFIX,
                fallback_memo=original.description,
            ),
            origin=EntryOrigin.ADJUSTMENT,
            origin_id=f"{VOID_ORIGIN_PREFIX}{original.id}",
            origin_reference=str(original.number),
            locked=True,
        )

        with LogContext.bind(entry_id=str(original.id)):
            try:
                contra = self._post(draft, voids_entry_id=original.id)
            except DuplicateOriginError:
                # Voided concurrently by another transaction
                raise AlreadyVoidedError(str(original.id), original.number) from None

            original.status = EntryStatus.VOIDED.value
            original.voided_by_entry_id = contra.id
            original.void_reason = reason
            original.voided_at = self.clock.now()
            original.updated_by_id = self.actor_id
            self.session.flush()

            logger.info(
                "journal_entry_voided",
                extra={
                    "voided_entry_number": original.number,
                    "contra_entry_id": str(contra.id),
                    "contra_entry_number": contra.number,
                    "reason": reason,
                },
            )
        return contra

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate(
        self,
        draft: EntryDraft,
        settings: FiscalSettings,
    ) -> tuple[dict[str, Account], EntryTotals]:
        validate_lines(draft.lines)
        self._require_description(draft.description)
        accounts = self._resolve_accounts(draft.lines)

        totals = compute_entry_totals(draft.lines)
        if not totals.is_balanced:
            if not settings.allow_unbalanced_entries:
                raise UnbalancedEntryError(totals.total_debit, totals.total_credit)
            logger.warning(
                "unbalanced_entry_accepted",
                extra={
                    "total_debit": totals.total_debit,
                    "total_credit": totals.total_credit,
                    "difference": totals.difference,
                },
            )

        if settings.enforce_period_locks and self._config.is_locked(
            draft.fiscal_year, draft.period
        ):
            raise ClosedPeriodError(draft.fiscal_year, draft.period, draft.entry_date)

        return accounts, totals

    def _resolve_accounts(self, lines: tuple[LineDraft, ...]) -> dict[str, Account]:
        codes = [line.account_code for line in lines]
        accounts = self._accounts.get_many_by_code(codes)
        for code in codes:
            account = accounts.get(code)
            if account is None:
                raise AccountNotFoundError(code)
            if not account.is_postable:
                raise NonPostableAccountError(code, "group account")
            if not account.is_active:
                raise NonPostableAccountError(code, "inactive account")
        return accounts

    def _check_origin(self, draft: EntryDraft) -> None:
        if draft.origin_id is None:
            return
        existing = self._journal.find_by_origin(draft.origin, draft.origin_id)
        if existing is not None:
            raise DuplicateOriginError(
                EntryOrigin(draft.origin).value, draft.origin_id, str(existing.id)
            )

    def _has_compensation(self, entry_id: UUID) -> bool:
        found = self.session.execute(
            select(JournalEntry.id).where(JournalEntry.voids_entry_id == entry_id).limit(1)
        ).scalar_one_or_none()
        return found is not None

    @staticmethod
    def _require_description(description: str) -> None:
        if not description or not description.strip():
            raise ValidationError("Entry description is required", field="description")

    # ------------------------------------------------------------------
    # Numbering and persistence helpers
    # ------------------------------------------------------------------

    def _allocate_number(self, fiscal_year: int, settings: FiscalSettings) -> int:
        if settings.reset_numbering_yearly:
            return self._sequences.next_value(
                SequenceService.journal_sequence_name(fiscal_year),
                start_after=lambda: self._journal.max_number(fiscal_year),
            )
        return self._sequences.next_value(
            SequenceService.journal_sequence_name(None),
            start_after=lambda: max(
                settings.next_entry_number - 1, self._journal.max_number_overall()
            ),
        )

    def _number_and_flush(
        self,
        entry: JournalEntry,
        settings: FiscalSettings,
        draft: EntryDraft | None = None,
    ) -> None:
        """Allocate the number and mark the entry posted inside one savepoint.

        A unique-key conflict rolls the savepoint back, including the
        counter increment.  ``draft`` is given for new entries so a
        concurrent duplicate origin surfaces as DuplicateOriginError.
        """
        savepoint = self.session.begin_nested()
        try:
            entry.number = self._allocate_number(entry.fiscal_year, settings)
            entry.status = EntryStatus.POSTED.value
            entry.posted_at = self.clock.now()
            self.session.add(entry)
            self.session.flush()
        except IntegrityError as exc:
            savepoint.rollback()
            if draft is not None:
                self._check_origin(draft)
            logger.warning(
                "journal_number_conflict",
                extra={"fiscal_year": entry.fiscal_year},
            )
            raise ConcurrencyConflictError(
                f"journal_number:{entry.fiscal_year}", 1
            ) from exc
        savepoint.commit()

    def _build_entry(
        self,
        draft: EntryDraft,
        totals: EntryTotals,
        accounts: dict[str, Account],
    ) -> JournalEntry:
        entry = JournalEntry(
            entry_date=draft.entry_date,
            period=draft.period,
            fiscal_year=draft.fiscal_year,
            description=draft.description.strip(),
            total_debit=totals.total_debit,
            total_credit=totals.total_credit,
            difference=totals.difference,
            is_balanced=totals.is_balanced,
            origin=EntryOrigin(draft.origin).value,
            origin_id=draft.origin_id,
            origin_reference=draft.origin_reference,
            locked=draft.locked,
            created_by_id=self.actor_id,
        )
        for line_no, line in enumerate(draft.lines, start=1):
            account = accounts[line.account_code]
            party_type = line.party_type or account.party_type
            entry.lines.append(
                JournalLine(
                    line_no=line_no,
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    debit=line.debit,
                    credit=line.credit,
                    memo=line.memo,
                    party_id=line.party_id or account.party_id,
                    party_type=PartyType(party_type).value if party_type else None,
                    party_name=line.party_name or account.party_name,
                    party_tax_id=line.party_tax_id or account.party_tax_id,
                    document_ref=line.document_ref,
                    due_date=line.due_date,
                    entry_date=draft.entry_date,
                    fiscal_year=draft.fiscal_year,
                    created_by_id=self.actor_id,
                )
            )
        return entry

    def _apply_balances(self, entry: JournalEntry) -> None:
        for line in entry.lines:
            self._balances.apply_delta(line.account_id, line.debit, line.credit)

    @staticmethod
    def _line_draft(line: JournalLine) -> LineDraft:
        return LineDraft(
            account_code=line.account_code,
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

    def _log_posted(self, entry: JournalEntry, totals: EntryTotals) -> None:
        logger.info(
            "journal_entry_posted",
            extra={
                "entry_id": str(entry.id),
                "entry_number": entry.number,
                "fiscal_year": entry.fiscal_year,
                "origin": entry.origin,
                "total_debit": totals.total_debit,
                "total_credit": totals.total_credit,
                "is_balanced": totals.is_balanced,
                "line_count": totals.line_count,
            },
        )
