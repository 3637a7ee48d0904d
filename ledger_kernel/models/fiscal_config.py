"""
Module: ledger_kernel.models.fiscal_config
Responsibility: ORM persistence for a ledger's fiscal configuration (one
    row per tenant database) and its per-year / per-month period locks.
Architecture position: Kernel > Models.  May import from db/.

Invariants enforced:
    - Exactly one FiscalConfig row per ledger (singleton_key is unique).
    - (fiscal_year, month) is unique in period_locks; month 0 locks the
      whole fiscal year.
"""

from sqlalchemy import JSON, Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase

WHOLE_YEAR = 0


class FiscalConfig(TrackedBase):
    """Fiscal settings of one ledger (see domain.settings.FiscalSettings)."""

    __tablename__ = "fiscal_config"

    __table_args__ = (UniqueConstraint("singleton_key", name="uq_fiscal_config_singleton"),)

    singleton_key: Mapped[str] = mapped_column(String(16), nullable=False, default="default")

    active_fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    auto_posting_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_unbalanced_entries: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    enforce_period_locks: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reset_numbering_yearly: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Start value of the global numbering counter
    next_entry_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    default_accounts: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    # {"customer": {"prefix": "430", "length": 7}, ...}
    subsidiary_rules: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    treasury_by_method: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<FiscalConfig year={self.active_fiscal_year}>"


class PeriodLock(TrackedBase):
    """A locked fiscal year (month == 0) or month (1-12)."""

    __tablename__ = "period_locks"

    __table_args__ = (UniqueConstraint("fiscal_year", "month", name="uq_period_lock"),)

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False, default=WHOLE_YEAR)

    def __repr__(self) -> str:
        scope = "year" if self.month == WHOLE_YEAR else f"month {self.month}"
        return f"<PeriodLock {self.fiscal_year} {scope}>"
