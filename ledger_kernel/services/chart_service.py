"""
ChartOfAccountsService -- account registry and subsidiary provisioning.

Responsibility:
    Creates, edits and deactivates chart-of-accounts nodes, seeds the PGC
    chart, and resolves (or creates on first use) the per-party subsidiary
    account of a customer or supplier.

Architecture position:
    Kernel > Services.  Called by the auto-posting generators (subsidiary
    accounts) and by account maintenance callers.  Reads subsidiary rules
    from FiscalConfigService and display data from a PartyDirectory.

Invariants enforced:
    - Account codes are unique digit strings (uq_account_code).
    - Exactly one subsidiary account per (party_type, party_id), even when
      two transactions race on a brand-new party: creation runs in a
      savepoint; on IntegrityError the winner is re-read, or the next code
      is tried, a bounded number of times.
    - Type and nature come from the PGC group-prefix rule unless the seed
      chart states them.
    - System accounts are immutable; accounts with movements are never
      deactivated; nothing is ever deleted.

Failure modes:
    - ValidationError for malformed codes or party types without a rule.
    - DuplicateAccountError, SystemAccountError, AccountHasMovementsError.
    - PartyNotFoundError when the directory does not know the party.
    - ConcurrencyConflictError after MAX_SUBSIDIARY_ATTEMPTS collisions.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.domain.classification import (
    AccountType,
    Nature,
    PartyType,
    account_level,
    classify,
    default_postable,
    parent_code,
    subsidiary_code,
    subsidiary_sequence,
    validate_code,
)
from ledger_kernel.domain.settings import ChartSeedAccount, PartyDisplayInfo
from ledger_kernel.exceptions import (
    AccountHasMovementsError,
    ConcurrencyConflictError,
    DuplicateAccountError,
    PartyNotFoundError,
    SystemAccountError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.fiscal_config_service import FiscalConfigService

logger = get_logger("services.chart")


class PartyDirectory(Protocol):
    """Lookup of customer/supplier display data, owned by the caller."""

    def get_party_display_info(
        self, party_id: str, party_type: PartyType
    ) -> PartyDisplayInfo | None:
        ...


@dataclass(frozen=True)
class PartyLink:
    """Party an account is the subsidiary account of."""

    party_id: str
    party_type: PartyType
    name: str | None = None
    tax_id: str | None = None


class ChartOfAccountsService(BaseService):
    """
    Service for chart-of-accounts writes.

    Contract:
        Every method flushes and returns the affected Account; the caller
        commits.

    Non-goals:
        - Does not post entries or touch balance columns.
    """

    MAX_SUBSIDIARY_ATTEMPTS = 5

    def __init__(
        self,
        session,
        clock=None,
        actor_id=None,
        party_directory: PartyDirectory | None = None,
        config_service: FiscalConfigService | None = None,
    ):
        super().__init__(session, clock, actor_id)
        self._accounts = AccountSelector(session)
        self._directory = party_directory
        self._config = config_service or FiscalConfigService(session, self.clock, self.actor_id)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        *,
        description: str | None = None,
        is_postable: bool | None = None,
        is_system: bool = False,
        party: PartyLink | None = None,
        account_type: AccountType | None = None,
        nature: Nature | None = None,
    ) -> Account:
        """
        Create one account.

        Level and parent code are derived from the code; a missing parent
        is not an error.  Type and nature default to classify(code).

        Raises:
            ValidationError: Code is not a digit string, or name is empty.
            DuplicateAccountError: Code already exists.
        """
        self._validate_code(code)
        if not name or not name.strip():
            raise ValidationError("Account name is required", field="name")
        if self._accounts.get_by_code(code) is not None:
            raise DuplicateAccountError(code)

        account = self._build(
            code,
            name.strip(),
            description=description,
            is_postable=is_postable,
            is_system=is_system,
            party=party,
            account_type=account_type,
            nature=nature,
        )

        savepoint = self.session.begin_nested()
        try:
            self.session.add(account)
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateAccountError(code) from None
        savepoint.commit()

        logger.info(
            "account_created",
            extra={
                "account_code": code,
                "account_type": account.account_type,
                "account_level": account.level,
                "is_postable": account.is_postable,
            },
        )
        return account

    def resolve_or_create_subsidiary_account(
        self,
        party_id: str,
        party_type: PartyType,
        display_info: PartyDisplayInfo | None = None,
    ) -> Account:
        """
        Subsidiary account of a party, created on first use.

        The new code is the highest existing code of the configured
        prefix and length plus one, zero-padded (e.g. "4300001").

        Args:
            party_id: Identifier of the customer or supplier.
            party_type: PartyType.CUSTOMER or PartyType.SUPPLIER.
            display_info: Name and tax id; looked up in the party
                directory when omitted.

        Returns:
            The existing or newly created Account.

        Raises:
            ValidationError: No subsidiary rule for this party type.
            PartyNotFoundError: Directory lookup found nothing.
            ConcurrencyConflictError: Bounded retries exhausted.
        """
        party_id = str(party_id)
        party_type = PartyType(party_type)

        existing = self._accounts.find_by_party(party_id, party_type)
        if existing is not None:
            return existing

        rule = self._config.get_settings().subsidiary_rule(party_type)
        if rule is None:
            raise ValidationError(
                f"No subsidiary account rule for party type {party_type.value}",
                field="party_type",
            )
        info = display_info or self._lookup_party(party_id, party_type)

        for attempt in range(1, self.MAX_SUBSIDIARY_ATTEMPTS + 1):
            highest = self._accounts.max_code_with_prefix(rule.prefix, rule.length)
            sequence = subsidiary_sequence(rule.prefix, highest) + 1 if highest else 1
            try:
                code = subsidiary_code(rule.prefix, rule.length, sequence)
            except ValueError as exc:
                raise ValidationError(str(exc), field="subsidiary_rules") from exc

            account = self._build(
                code,
                info.name,
                party=PartyLink(party_id, party_type, info.name, info.tax_id),
                is_postable=True,
            )

            savepoint = self.session.begin_nested()
            try:
                self.session.add(account)
                self.session.flush()
            except IntegrityError:
                savepoint.rollback()
                winner = self._accounts.find_by_party(party_id, party_type)
                if winner is not None:
                    logger.info(
                        "subsidiary_account_resolved_after_race",
                        extra={"party_id": party_id, "account_code": winner.code},
                    )
                    return winner
                # Code taken by another party; try the next one
                logger.warning(
                    "subsidiary_code_race_retry",
                    extra={"party_id": party_id, "account_code": code, "attempt": attempt},
                )
                continue
            savepoint.commit()

            logger.info(
                "subsidiary_account_created",
                extra={
                    "account_code": code,
                    "party_id": party_id,
                    "party_type": party_type.value,
                },
            )
            return account

        raise ConcurrencyConflictError(
            f"subsidiary:{party_type.value}:{party_id}", self.MAX_SUBSIDIARY_ATTEMPTS
        )

    def seed_chart(self, seed_accounts: Iterable[ChartSeedAccount]) -> int:
        """
        Create the seed chart's accounts as system accounts.

        Codes that already exist are skipped, so seeding is repeatable.

        Returns:
            Number of accounts created.
        """
        existing = set(self.session.execute(select(Account.code)).scalars())
        created = 0
        for seed in seed_accounts:
            if seed.code in existing:
                continue
            self._validate_code(seed.code)
            self.session.add(
                self._build(
                    seed.code,
                    seed.name,
                    is_postable=seed.postable,
                    is_system=True,
                    account_type=seed.account_type,
                    nature=seed.nature,
                )
            )
            existing.add(seed.code)
            created += 1
        self.session.flush()

        logger.info(
            "chart_seeded",
            extra={"created_count": created, "total_count": len(existing)},
        )
        return created

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def update_account(
        self,
        account_id: UUID,
        *,
        name: str | None = None,
        description: str | None = None,
        is_postable: bool | None = None,
    ) -> Account:
        """
        Edit name, description or postable flag of a non-system account.

        Raises:
            SystemAccountError: Account is system-defined.
            AccountHasMovementsError: Turning off is_postable on an account
                with movements.
        """
        account = self._accounts.require_by_id(account_id)
        if account.is_system:
            raise SystemAccountError(account.code)

        if name is not None:
            if not name.strip():
                raise ValidationError("Account name is required", field="name")
            account.name = name.strip()
        if description is not None:
            account.description = description
        if is_postable is not None:
            if not is_postable and account.is_postable and account.movement_count > 0:
                raise AccountHasMovementsError(
                    account.code, account.movement_count, action="made non-postable"
                )
            account.is_postable = is_postable
        account.updated_by_id = self.actor_id
        self.session.flush()

        logger.info("account_updated", extra={"account_code": account.code})
        return account

    def deactivate_account(self, account_id: UUID) -> Account:
        """
        Deactivate an account.

        Raises:
            SystemAccountError: Account is system-defined.
            AccountHasMovementsError: Account has movements.
        """
        account = self._accounts.require_by_id(account_id)
        if account.is_system:
            raise SystemAccountError(account.code)
        if account.movement_count > 0:
            raise AccountHasMovementsError(account.code, account.movement_count)
        if not account.is_active:
            return account

        account.is_active = False
        account.updated_by_id = self.actor_id
        self.session.flush()

        logger.info("account_deactivated", extra={"account_code": account.code})
        return account

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lookup_party(self, party_id: str, party_type: PartyType) -> PartyDisplayInfo:
        if self._directory is None:
            return PartyDisplayInfo(name=f"{party_type.value.capitalize()} {party_id}")
        info = self._directory.get_party_display_info(party_id, party_type)
        if info is None:
            raise PartyNotFoundError(party_id, party_type.value)
        return info

    @staticmethod
    def _validate_code(code: str) -> None:
        try:
            validate_code(code)
        except ValueError as exc:
            raise ValidationError(str(exc), field="code") from exc

    def _build(
        self,
        code: str,
        name: str,
        *,
        description: str | None = None,
        is_postable: bool | None = None,
        is_system: bool = False,
        party: PartyLink | None = None,
        account_type: AccountType | None = None,
        nature: Nature | None = None,
    ) -> Account:
        derived = classify(code)
        return Account(
            code=code,
            name=name,
            description=description,
            account_type=AccountType(account_type or derived.account_type).value,
            nature=Nature(nature or derived.nature).value,
            level=account_level(code),
            parent_code=parent_code(code),
            is_postable=default_postable(code) if is_postable is None else is_postable,
            is_system=is_system,
            is_active=True,
            party_id=party.party_id if party else None,
            party_type=PartyType(party.party_type).value if party else None,
            party_name=party.name if party else None,
            party_tax_id=party.tax_id if party else None,
            created_by_id=self.actor_id,
        )
