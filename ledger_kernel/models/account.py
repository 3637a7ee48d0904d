"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts, including the
    running balance columns maintained by AccountBalanceIndex.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - code is unique (uq_account_code).
    - At most one subsidiary account per party (uq_account_party).
    - net_balance = debit_sum - credit_sum for debit-nature accounts and
      credit_sum - debit_sum otherwise.  The balance columns are written
      only by AccountBalanceIndex.apply_delta, in the same UPDATE.
    - Accounts are never deleted; they are deactivated.

Failure modes:
    - IntegrityError on duplicate code or duplicate party link (handled by
      ChartOfAccountsService).

Audit relevance:
    debit_sum, credit_sum and movement_count must always reconcile with
    the journal lines that reference the account.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase
from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.classification import (
    AccountType,
    Nature,
    PartyType,
    natural_balance,
)


class Account(TrackedBase):
    """
    Chart of accounts node.

    Contract:
        Type and nature are fixed at creation (by PGC group prefix or by
        the seed chart).  System accounts cannot be edited or deactivated.

    Guarantees:
        - level and parent_code are derived from code at creation.
        - Balance columns start at zero.

    Non-goals:
        - Does not enforce the net_balance formula in Python; the balance
          index writes it atomically in SQL.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        UniqueConstraint("party_type", "party_id", name="uq_account_party"),
        Index("idx_account_parent", "parent_code"),
        Index("idx_account_type", "account_type"),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    nature: Mapped[Nature] = mapped_column(String(10), nullable=False)

    level: Mapped[int] = mapped_column(Integer, nullable=False)

    parent_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Movement (leaf) account
    is_postable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Seeded from the official chart; immutable
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Subsidiary-party link
    party_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    party_type: Mapped[PartyType | None] = mapped_column(String(20), nullable=True)
    party_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    party_tax_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Running balances (AccountBalanceIndex)
    debit_sum: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    credit_sum: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    net_balance: Mapped[Decimal] = mapped_column(nullable=False, default=ZERO)
    movement_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_movement_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_nature(self) -> bool:
        return self.nature == Nature.DEBIT

    @property
    def is_subsidiary(self) -> bool:
        return self.party_id is not None

    def expected_net_balance(self) -> Decimal:
        """Net balance recomputed from the stored sums."""
        return natural_balance(Nature(self.nature), self.debit_sum, self.credit_sum)
