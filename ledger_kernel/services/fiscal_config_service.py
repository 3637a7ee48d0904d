"""
FiscalConfigService -- per-ledger fiscal configuration and period locks.

Responsibility:
    Persists the ledger's FiscalSettings (flags, numbering policy, default
    accounts, subsidiary rules) and its locked years and months, and hands
    out immutable snapshots to the posting pipeline and the generators.

Architecture position:
    Kernel > Services.  Consulted by JournalLedgerService (locks, flags,
    numbering), ChartOfAccountsService (subsidiary rules) and the
    auto-posting generators (default accounts, feature flag).

Invariants enforced:
    - One configuration row per ledger; concurrent first initialization
      converges on a single row.
    - A year lock (month 0) closes every month of that year.

Failure modes:
    - ValidationError for months outside 1-12 or unknown setting names.
"""

from dataclasses import fields
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from ledger_kernel.domain.classification import PartyType
from ledger_kernel.domain.settings import (
    DefaultAccounts,
    FiscalSettings,
    SubsidiaryRule,
)
from ledger_kernel.exceptions import ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_config import WHOLE_YEAR, FiscalConfig, PeriodLock
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.fiscal_config")

_SETTING_NAMES = frozenset(f.name for f in fields(FiscalSettings))


class FiscalConfigService(BaseService):
    """
    Service for the ledger's fiscal configuration.

    Contract:
        ``get_settings()`` always returns a snapshot; if the ledger has no
        configuration yet, one is created from ``defaults`` (or from
        built-in defaults for the clock's current year).

    Non-goals:
        - Does not read YAML; ``ledger_config`` builds FiscalSettings and
          passes them to ``initialize``.
    """

    def __init__(self, session, clock=None, actor_id=None, defaults: FiscalSettings | None = None):
        super().__init__(session, clock, actor_id)
        self._defaults = defaults

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def initialize(self, settings: FiscalSettings) -> FiscalSettings:
        """Store settings if the ledger has none yet; return the effective settings."""
        row = self._load_row()
        if row is not None:
            return self._to_settings(row)

        savepoint = self.session.begin_nested()
        try:
            row = FiscalConfig(created_by_id=self.actor_id)
            self._apply(row, settings)
            self.session.add(row)
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            row = self._load_row()
            return self._to_settings(row)
        savepoint.commit()

        logger.info(
            "fiscal_config_initialized",
            extra={
                "active_fiscal_year": settings.active_fiscal_year,
                "reset_numbering_yearly": settings.reset_numbering_yearly,
                "auto_posting_enabled": settings.auto_posting_enabled,
            },
        )
        return settings

    def get_settings(self) -> FiscalSettings:
        """Current settings snapshot, creating defaults on first use."""
        row = self._load_row()
        if row is None:
            return self.initialize(self._defaults or FiscalSettings(
                active_fiscal_year=self.clock.today().year,
            ))
        return self._to_settings(row)

    def update_settings(self, **changes: Any) -> FiscalSettings:
        """
        Change individual settings.

        Args:
            **changes: FiscalSettings field names and new values.

        Raises:
            ValidationError: Unknown setting name.
        """
        unknown = set(changes) - _SETTING_NAMES
        if unknown:
            raise ValidationError(
                f"Unknown fiscal settings: {sorted(unknown)}", field="settings"
            )

        current = self.get_settings()
        updated = current.with_changes(**changes)
        row = self._load_row()
        self._apply(row, updated)
        row.updated_by_id = self.actor_id
        self.session.flush()

        logger.info("fiscal_config_updated", extra={"changed": sorted(changes)})
        return updated

    # ------------------------------------------------------------------
    # Period locks
    # ------------------------------------------------------------------

    def lock_period(self, fiscal_year: int, month: int | None = None) -> None:
        """Lock a whole fiscal year (month=None) or one month. Idempotent."""
        month_key = self._month_key(month)
        if self._find_lock(fiscal_year, month_key) is not None:
            return

        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                PeriodLock(
                    fiscal_year=fiscal_year,
                    month=month_key,
                    created_by_id=self.actor_id,
                )
            )
            self.session.flush()
        except IntegrityError:
            # Locked concurrently; same outcome
            savepoint.rollback()
            return
        savepoint.commit()

        logger.info(
            "period_locked",
            extra={"fiscal_year": fiscal_year, "month": month_key},
        )

    def unlock_period(self, fiscal_year: int, month: int | None = None) -> None:
        """Remove a year or month lock. Idempotent."""
        month_key = self._month_key(month)
        self.session.execute(
            delete(PeriodLock).where(
                PeriodLock.fiscal_year == fiscal_year,
                PeriodLock.month == month_key,
            )
        )
        self.session.flush()
        logger.info(
            "period_unlocked",
            extra={"fiscal_year": fiscal_year, "month": month_key},
        )

    def is_locked(self, fiscal_year: int, month: int) -> bool:
        """True if the year or this month of it is locked."""
        self._month_key(month)
        found = self.session.execute(
            select(PeriodLock.id)
            .where(
                PeriodLock.fiscal_year == fiscal_year,
                PeriodLock.month.in_((WHOLE_YEAR, month)),
            )
            .limit(1)
        ).scalar_one_or_none()
        return found is not None

    def locked_periods(self) -> list[tuple[int, int]]:
        """All locks as (fiscal_year, month) pairs; month 0 is a whole year."""
        rows = self.session.execute(
            select(PeriodLock.fiscal_year, PeriodLock.month).order_by(
                PeriodLock.fiscal_year, PeriodLock.month
            )
        ).all()
        return [(year, month) for year, month in rows]

    def peek_next_entry_number(self, fiscal_year: int) -> int:
        """Number the next posted entry of fiscal_year would receive (no allocation)."""
        settings = self.get_settings()
        sequences = SequenceService(self.session)
        journal = JournalSelector(self.session)
        if settings.reset_numbering_yearly:
            current = sequences.current_value(
                SequenceService.journal_sequence_name(fiscal_year)
            )
            return max(current or 0, journal.max_number(fiscal_year)) + 1

        current = sequences.current_value(SequenceService.journal_sequence_name(None))
        floor = max(settings.next_entry_number - 1, journal.max_number_overall())
        return max(current or 0, floor) + 1

    # ------------------------------------------------------------------
    # Row <-> snapshot
    # ------------------------------------------------------------------

    def _load_row(self) -> FiscalConfig | None:
        return self.session.execute(
            select(FiscalConfig)
            .where(FiscalConfig.singleton_key == "default")
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _find_lock(self, fiscal_year: int, month_key: int) -> PeriodLock | None:
        return self.session.execute(
            select(PeriodLock).where(
                PeriodLock.fiscal_year == fiscal_year,
                PeriodLock.month == month_key,
            )
        ).scalar_one_or_none()

    @staticmethod
    def _month_key(month: int | None) -> int:
        if month is None:
            return WHOLE_YEAR
        if not 1 <= month <= 12:
            raise ValidationError(f"Month must be 1-12, got {month}", field="month")
        return month

    @staticmethod
    def _apply(row: FiscalConfig, settings: FiscalSettings) -> None:
        row.active_fiscal_year = settings.active_fiscal_year
        row.auto_posting_enabled = settings.auto_posting_enabled
        row.allow_unbalanced_entries = settings.allow_unbalanced_entries
        row.enforce_period_locks = settings.enforce_period_locks
        row.reset_numbering_yearly = settings.reset_numbering_yearly
        row.next_entry_number = settings.next_entry_number
        row.default_accounts = settings.default_accounts.to_dict()
        row.subsidiary_rules = {
            PartyType(party_type).value: {"prefix": rule.prefix, "length": rule.length}
            for party_type, rule in settings.subsidiary_rules.items()
        }
        row.treasury_by_method = dict(settings.treasury_by_method)

    @staticmethod
    def _to_settings(row: FiscalConfig) -> FiscalSettings:
        return FiscalSettings(
            active_fiscal_year=row.active_fiscal_year,
            auto_posting_enabled=row.auto_posting_enabled,
            allow_unbalanced_entries=row.allow_unbalanced_entries,
            enforce_period_locks=row.enforce_period_locks,
            reset_numbering_yearly=row.reset_numbering_yearly,
            next_entry_number=row.next_entry_number,
            default_accounts=DefaultAccounts.from_dict(row.default_accounts or {}),
            subsidiary_rules={
                PartyType(key): SubsidiaryRule(prefix=value["prefix"], length=int(value["length"]))
                for key, value in (row.subsidiary_rules or {}).items()
            },
            treasury_by_method=dict(row.treasury_by_method or {}),
        )
