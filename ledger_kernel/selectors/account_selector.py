"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only access to the chart of accounts: lookups by code,
    id and party link, and filtered listings for account maintenance.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: no mutations.
    - list_accounts() returns AccountDTO rows ordered by code.

Failure modes:
    - get_by_code() / get_by_id() return None when absent; require_*
      variants raise AccountNotFoundError.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select

from ledger_kernel.domain.classification import AccountType, Nature, PartyType
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AccountDTO:
    """Data transfer object for an account."""

    id: UUID
    code: str
    name: str
    description: str | None
    account_type: AccountType
    nature: Nature
    level: int
    parent_code: str | None
    is_postable: bool
    is_system: bool
    is_active: bool
    party_id: str | None
    party_type: PartyType | None
    party_name: str | None
    party_tax_id: str | None
    debit_sum: Decimal
    credit_sum: Decimal
    net_balance: Decimal
    movement_count: int
    last_movement_at: datetime | None

    @classmethod
    def from_model(cls, account: Account) -> "AccountDTO":
        return cls(
            id=account.id,
            code=account.code,
            name=account.name,
            description=account.description,
            account_type=AccountType(account.account_type),
            nature=Nature(account.nature),
            level=account.level,
            parent_code=account.parent_code,
            is_postable=account.is_postable,
            is_system=account.is_system,
            is_active=account.is_active,
            party_id=account.party_id,
            party_type=PartyType(account.party_type) if account.party_type else None,
            party_name=account.party_name,
            party_tax_id=account.party_tax_id,
            debit_sum=account.debit_sum,
            credit_sum=account.credit_sum,
            net_balance=account.net_balance,
            movement_count=account.movement_count,
            last_movement_at=account.last_movement_at,
        )


class AccountSelector(BaseSelector):
    """
    Selector for chart-of-accounts queries.

    Contract:
        get_* lookups return ORM rows for use inside services; listings
        return AccountDTO.
    """

    def get_by_code(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()

    def get_by_id(self, account_id: UUID) -> Account | None:
        return self.session.get(Account, account_id)

    def require_by_code(self, code: str) -> Account:
        account = self.get_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def require_by_id(self, account_id: UUID) -> Account:
        account = self.get_by_id(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def get_many_by_code(self, codes: list[str]) -> dict[str, Account]:
        """Accounts for the given codes, keyed by code (missing codes omitted)."""
        if not codes:
            return {}
        rows = self.session.execute(
            select(Account).where(Account.code.in_(set(codes)))
        ).scalars()
        return {account.code: account for account in rows}

    def find_by_party(self, party_id: str, party_type: PartyType) -> Account | None:
        """Subsidiary account linked to a party, if any."""
        return self.session.execute(
            select(Account).where(
                Account.party_type == PartyType(party_type).value,
                Account.party_id == str(party_id),
            )
        ).scalar_one_or_none()

    def max_code_with_prefix(self, prefix: str, length: int) -> str | None:
        """Highest code of exactly ``length`` digits starting with ``prefix``."""
        pattern = prefix + "_" * (length - len(prefix))
        codes = self.session.execute(
            select(Account.code).where(Account.code.like(pattern))
        ).scalars()
        # LIKE "_" also matches non-digits; keep numeric codes only
        numeric = [code for code in codes if code.isdigit()]
        return max(numeric) if numeric else None

    def first_postable_with_prefix(self, prefix: str) -> Account | None:
        """Lowest-coded active postable account under a prefix."""
        return self.session.execute(
            select(Account)
            .where(
                Account.code.like(f"{prefix}%"),
                Account.is_postable.is_(True),
                Account.is_active.is_(True),
            )
            .order_by(Account.code)
            .limit(1)
        ).scalar_one_or_none()

    def list_accounts(
        self,
        level: int | None = None,
        account_type: AccountType | None = None,
        postable: bool | None = None,
        active: bool | None = True,
        search: str | None = None,
        parent_code: str | None = None,
        code_prefix: str | None = None,
    ) -> list[AccountDTO]:
        """
        List accounts ordered by code.

        Args:
            level: Only accounts at this hierarchy level.
            account_type: Only accounts of this type.
            postable: Only postable (True) or group (False) accounts.
            active: Only active (True) or inactive (False); None for both.
            search: Case-insensitive substring of code or name.
            parent_code: Only direct children of this code.
            code_prefix: Only codes starting with this prefix.
        """
        query = select(Account)

        if level is not None:
            query = query.where(Account.level == level)
        if account_type is not None:
            query = query.where(Account.account_type == AccountType(account_type).value)
        if postable is not None:
            query = query.where(Account.is_postable.is_(postable))
        if active is not None:
            query = query.where(Account.is_active.is_(active))
        if parent_code is not None:
            query = query.where(Account.parent_code == parent_code)
        if code_prefix:
            query = query.where(Account.code.like(f"{code_prefix}%"))
        if search:
            term = f"%{search.lower()}%"
            query = query.where(
                or_(Account.code.like(term), Account.name.ilike(term))
            )

        rows = self.session.execute(query.order_by(Account.code)).scalars()
        return [AccountDTO.from_model(account) for account in rows]
