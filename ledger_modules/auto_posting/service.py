"""
Auto-posting Service (``ledger_modules.auto_posting.service``).

Responsibility
--------------
Turns business documents (sales and purchase invoices, customer receipts,
supplier payments) into posted, locked journal entries.  Resolves the
accounts every line needs -- the party's subsidiary account, the
configured default accounts and the treasury account of the payment --
delegates line construction to the pure builders in ``rules.py`` and posts
through ``JournalLedgerService``.

Architecture position
---------------------
**Modules layer** -- thin glue over kernel services.  Constructor:
``session`` + ``clock`` + ``actor_id`` (+ optional party directory and
shared config service).  Flushes through the kernel; never commits.

Invariants enforced
-------------------
* At most one entry per source document: an existing entry for
  (origin, origin_id) is returned unchanged, and a concurrent duplicate
  insert is resolved by re-reading the winning entry.
* A generated entry is balanced before it reaches the ledger; an
  inconsistent payload raises ``UnbalancedGeneratedEntryError`` even when
  the ledger accepts unbalanced manual entries.
* Generated entries are locked.

Failure modes
-------------
* Automatic posting disabled  -> ``None`` (logged ``auto_posting_skipped``).
* ``MissingDefaultAccountError`` when no account resolves for a role.
* ``UnbalancedGeneratedEntryError`` for inconsistent payload arithmetic.
* Every kernel error (``ClosedPeriodError``, ``NonPostableAccountError``,
  ...) propagates unchanged.

Audit relevance
---------------
Every generated, skipped or already-existing document is logged with its
origin and origin id.
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.classification import PartyType
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import EntryDraft, EntryOrigin
from ledger_kernel.domain.settings import FiscalSettings, PartyDisplayInfo, rate_key
from ledger_kernel.domain.totals import compute_entry_totals
from ledger_kernel.exceptions import (
    AutomaticPostingDisabledError,
    DuplicateOriginError,
    MissingDefaultAccountError,
    UnbalancedGeneratedEntryError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.chart_service import ChartOfAccountsService, PartyDirectory
from ledger_kernel.services.fiscal_config_service import FiscalConfigService
from ledger_kernel.services.journal_service import JournalLedgerService
from ledger_modules.auto_posting.models import (
    PaymentPayload,
    PurchaseInvoicePayload,
    ReceiptPayload,
    SalesInvoicePayload,
)
from ledger_modules.auto_posting.rules import (
    InvoiceAccounts,
    build_payment_entry,
    build_purchase_invoice_entry,
    build_receipt_entry,
    build_sales_invoice_entry,
)

logger = get_logger("modules.auto_posting.service")

# Treasury role -> (default-account attribute, fallback code prefix)
_TREASURY_ROLES = {
    "cash": ("cash", "570"),
    "bank": ("bank", "572"),
    "card": ("card", "571"),
}
BANK_ACCOUNT_PREFIX = "572"
DEFAULT_TREASURY_ROLE = "cash"


class AutoPostingService:
    """
    Journal entry generators for business documents.

    Contract
    --------
    * ``post_*`` returns the posted JournalEntry, the entry that already
      existed for the document, or ``None`` when automatic posting is
      disabled.

    Guarantees
    ----------
    * Calling a generator twice for the same document posts once.
    * Line construction lives in ``rules.py``; this class only resolves
      accounts and orchestrates.

    Non-goals
    ---------
    * Does NOT void or repost entries when a document changes.
    * Does NOT commit.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        actor_id: UUID | None = None,
        party_directory: PartyDirectory | None = None,
        config_service: FiscalConfigService | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config_service or FiscalConfigService(session, self._clock, actor_id)
        self._chart = ChartOfAccountsService(
            session,
            self._clock,
            actor_id,
            party_directory=party_directory,
            config_service=self._config,
        )
        self._ledger = JournalLedgerService(
            session, self._clock, actor_id, config_service=self._config
        )
        self._accounts = AccountSelector(session)
        self._journal = JournalSelector(session)

    # =========================================================================
    # Public API
    # =========================================================================

    def post_sales_invoice(self, payload: SalesInvoicePayload) -> JournalEntry | None:
        """Dr customer / Cr sales + output VAT (Dr withholding receivable)."""

        def build(settings: FiscalSettings) -> EntryDraft:
            defaults = settings.default_accounts
            customer = self._subsidiary(payload, PartyType.CUSTOMER)
            accounts = InvoiceAccounts(
                party=customer.code,
                revenue_or_expense=self._require("sales", defaults.sales),
                withholding=self._withholding_account(
                    payload, "withholding_receivable", defaults.withholding_receivable
                ),
                vat_by_rate=self._vat_accounts(
                    payload,
                    defaults.vat_output_for,
                    defaults.vat_output_generic,
                    role="vat_output",
                ),
            )
            return build_sales_invoice_entry(payload, accounts)

        return self._generate(EntryOrigin.SALES_INVOICE, payload.invoice_id, build)

    def post_purchase_invoice(self, payload: PurchaseInvoicePayload) -> JournalEntry | None:
        """Dr purchases + input VAT / Cr supplier (Cr withholding payable)."""

        def build(settings: FiscalSettings) -> EntryDraft:
            defaults = settings.default_accounts
            supplier = self._subsidiary(payload, PartyType.SUPPLIER)
            accounts = InvoiceAccounts(
                party=supplier.code,
                revenue_or_expense=self._require("purchases", defaults.purchases),
                withholding=self._withholding_account(
                    payload, "withholding_payable", defaults.withholding_payable
                ),
                vat_by_rate=self._vat_accounts(
                    payload,
                    defaults.vat_input_for,
                    defaults.vat_input_generic,
                    role="vat_input",
                ),
            )
            return build_purchase_invoice_entry(payload, accounts)

        return self._generate(EntryOrigin.PURCHASE_INVOICE, payload.invoice_id, build)

    def post_receipt(self, payload: ReceiptPayload) -> JournalEntry | None:
        """Dr treasury / Cr customer."""

        def build(settings: FiscalSettings) -> EntryDraft:
            treasury = self.resolve_treasury_account(
                payload.payment_method, payload.bank_account_id, settings
            )
            customer = self._subsidiary(payload, PartyType.CUSTOMER)
            return build_receipt_entry(payload, treasury.code, customer.code)

        return self._generate(EntryOrigin.RECEIPT, payload.document_id, build)

    def post_payment(self, payload: PaymentPayload) -> JournalEntry | None:
        """Dr supplier / Cr treasury."""

        def build(settings: FiscalSettings) -> EntryDraft:
            treasury = self.resolve_treasury_account(
                payload.payment_method, payload.bank_account_id, settings
            )
            supplier = self._subsidiary(payload, PartyType.SUPPLIER)
            return build_payment_entry(payload, treasury.code, supplier.code)

        return self._generate(EntryOrigin.PAYMENT, payload.document_id, build)

    def resolve_treasury_account(
        self,
        payment_method: str,
        bank_account_id: str | None = None,
        settings: FiscalSettings | None = None,
    ) -> Account:
        """
        Treasury account for a payment.

        Resolution order:
            1. The 572 account linked to ``bank_account_id``.
            2. The payment method's treasury role (cash, bank or card):
               the configured default account, else the first postable
               account under the role's prefix; card falls back to bank.
            3. The cash role.

        Raises:
            MissingDefaultAccountError: Nothing resolves.
        """
        settings = settings or self._config.get_settings()

        if bank_account_id:
            linked = self._accounts.find_by_party(str(bank_account_id), PartyType.BANK_ACCOUNT)
            if (
                linked is not None
                and linked.code.startswith(BANK_ACCOUNT_PREFIX)
                and self._usable(linked)
            ):
                return linked

        role = settings.treasury_by_method.get(payment_method, DEFAULT_TREASURY_ROLE)
        roles = [role]
        if role == "card":
            roles.append("bank")
        if DEFAULT_TREASURY_ROLE not in roles:
            roles.append(DEFAULT_TREASURY_ROLE)

        for candidate in roles:
            account = self._treasury_for_role(candidate, settings)
            if account is not None:
                if candidate != role:
                    logger.info(
                        "treasury_account_fallback",
                        extra={
                            "payment_method": payment_method,
                            "role": role,
                            "fallback_role": candidate,
                            "account_code": account.code,
                        },
                    )
                return account

        raise MissingDefaultAccountError(f"treasury:{payment_method}")

    # =========================================================================
    # Orchestration
    # =========================================================================

    def _generate(
        self,
        origin: EntryOrigin,
        origin_id: str,
        build: Callable[[FiscalSettings], EntryDraft],
    ) -> JournalEntry | None:
        origin_id = str(origin_id)
        with LogContext.bind(origin_id=origin_id):
            try:
                settings = self._require_enabled(origin, origin_id)
            except AutomaticPostingDisabledError as exc:
                logger.info(
                    "auto_posting_skipped",
                    extra={"origin": origin.value, "reason": exc.code},
                )
                return None

            existing = self._journal.find_by_origin(origin, origin_id)
            if existing is not None:
                logger.info(
                    "auto_posting_already_posted",
                    extra={
                        "origin": origin.value,
                        "entry_id": str(existing.id),
                        "entry_number": existing.number,
                    },
                )
                return existing

            draft = build(settings)
            totals = compute_entry_totals(draft.lines)
            if not totals.is_balanced:
                raise UnbalancedGeneratedEntryError(
                    origin.value, origin_id, totals.total_debit, totals.total_credit
                )

            try:
                entry = self._ledger.post_entry(draft)
            except DuplicateOriginError:
                winner = self._journal.find_by_origin(origin, origin_id)
                if winner is None:
                    raise
                logger.info(
                    "auto_posting_resolved_after_race",
                    extra={"origin": origin.value, "entry_id": str(winner.id)},
                )
                return winner

            logger.info(
                "auto_posting_generated",
                extra={
                    "origin": origin.value,
                    "entry_id": str(entry.id),
                    "entry_number": entry.number,
                    "total_debit": totals.total_debit,
                },
            )
            return entry

    def _require_enabled(self, origin: EntryOrigin, origin_id: str) -> FiscalSettings:
        settings = self._config.get_settings()
        if not settings.auto_posting_enabled:
            raise AutomaticPostingDisabledError(origin.value, origin_id)
        return settings

    # =========================================================================
    # Account resolution
    # =========================================================================

    def _subsidiary(self, payload, party_type: PartyType) -> Account:
        info = None
        if payload.party_name:
            info = PartyDisplayInfo(name=payload.party_name, tax_id=payload.party_tax_id)
        return self._chart.resolve_or_create_subsidiary_account(
            str(payload.party_id), party_type, display_info=info
        )

    def _require(self, role: str, code: str | None) -> str:
        account = self._accounts.get_by_code(code) if code else None
        if account is None or not self._usable(account):
            raise MissingDefaultAccountError(role, code)
        return account.code

    def _withholding_account(self, payload, role: str, code: str) -> str:
        if payload.withholding_amount > ZERO:
            return self._require(role, code)
        return code

    def _vat_accounts(
        self,
        payload,
        specific_for: Callable,
        generic_code: str,
        role: str,
    ) -> dict[str, str]:
        """Rate key -> VAT account code; the generic account when no rate-specific one is usable."""
        resolved: dict[str, str] = {}
        for vat in payload.vat_breakdown:
            key = rate_key(vat.rate)
            if key in resolved or vat.amount <= ZERO:
                continue
            specific = specific_for(vat.rate)
            account = self._accounts.get_by_code(specific) if specific else None
            if account is not None and self._usable(account):
                resolved[key] = account.code
            else:
                resolved[key] = self._require(role, generic_code)
        return resolved

    def _treasury_for_role(self, role: str, settings: FiscalSettings) -> Account | None:
        attribute, prefix = _TREASURY_ROLES[role]
        code = getattr(settings.default_accounts, attribute)
        if code:
            account = self._accounts.get_by_code(code)
            if account is not None and self._usable(account):
                return account
        return self._accounts.first_postable_with_prefix(prefix)

    @staticmethod
    def _usable(account: Account) -> bool:
        return account.is_postable and account.is_active
