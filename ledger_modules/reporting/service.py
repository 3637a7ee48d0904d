"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Generates the Spanish statutory books and statements -- libro diario,
libro mayor, balance de sumas y saldos, balance de situación and cuenta de
pérdidas y ganancias -- by bridging ``LedgerSelector`` and
``AccountSelector`` to the pure transformation functions in
``statements.py``.  This is a **read-only** service: no journal entries
are posted and no balances move.

Architecture position
---------------------
**Modules layer** -- thin glue.  Constructor: ``session`` + ``clock`` +
``config``.  The caller opens the session with
``LedgerStore.snapshot_scope()`` so every query of one report reads the
same snapshot.

Invariants enforced
-------------------
* Read-only -- no mutations to the journal or the chart.
* All monetary amounts use ``Decimal`` -- NEVER ``float``.
* Only effective entries count (posted, not a compensating entry), except
  for the libro diario with ``include_voided=True``.
* Report metadata carries the generation timestamp and parameters.

Failure modes
-------------
* date_from after date_to, bad page or detail level  -> ``ValidationError``
  before any query runs.
* Unknown account code for a single-account libro mayor  ->
  ``AccountNotFoundError``.
* Accounts of groups 6/7 outside every income-statement section  ->
  left out of the statement and logged as a warning.

Audit relevance
---------------
A structured ``*_generated`` event is logged for every report with its
parameters and reconciliation flags.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import EntryOrigin
from ledger_kernel.exceptions import AccountNotFoundError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.account_selector import AccountDTO, AccountSelector
from ledger_kernel.selectors.ledger_selector import CODE_MAX_LENGTH, LedgerSelector

from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSituacionReport,
    CuentaResultadosReport,
    CuentaResultadosResumida,
    LibroDiarioReport,
    LibroMayorReport,
    ReportMetadata,
    ReportType,
    SumasYSaldosReport,
)
from ledger_modules.reporting.statements import (
    build_balance_situacion,
    build_cuenta_resultados,
    build_cuenta_resultados_resumida,
    build_libro_diario,
    build_libro_mayor,
    build_mayor_account,
    build_sumas_y_saldos,
    unclassified_codes,
)

logger = get_logger("modules.reporting.service")


def shift_year(value: date, years: int = -1) -> date:
    """Same day in another year; 29 February becomes 28 February."""
    try:
        return value.replace(year=value.year + years)
    except ValueError:
        return value.replace(year=value.year + years, day=28)


def in_code_range(code: str, code_from: str | None, code_to: str | None) -> bool:
    """Range test matching ``LedgerSelector.account_totals``."""
    if code_from and code < code_from:
        return False
    if code_to and code > code_to.ljust(CODE_MAX_LENGTH, "9"):
        return False
    return True


class ReportingService:
    """
    Statutory report generation service.

    Contract
    --------
    * Every public method returns a frozen report dataclass.
    * All methods are **read-only** -- no mutations to the database.

    Guarantees
    ----------
    * Report generation delegates to pure functions in ``statements.py``;
      no accounting arithmetic lives in this class.
    * Clock is injectable for deterministic testing.
    * The libro diario grand totals cover the whole filtered set
      regardless of the page returned.

    Non-goals
    ---------
    * Does NOT format for print, PDF or CSV.
    * Does NOT enforce fiscal-period locks (read-only service).
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._ledger = LedgerSelector(session)
        self._accounts = AccountSelector(session)

        logger.info(
            "reporting_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "currency": self._config.currency,
            },
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    @property
    def _places(self) -> int:
        return self._config.display_precision

    def _load_accounts(self) -> list[AccountDTO]:
        """All accounts, inactive included, ordered by code."""
        accounts = self._accounts.list_accounts(active=None)
        logger.debug(
            "accounts_loaded_for_reporting",
            extra={"account_count": len(accounts)},
        )
        return accounts

    def _account_names(self) -> dict[str, str]:
        return {account.code: account.name for account in self._load_accounts()}

    def _build_metadata(
        self,
        report_type: ReportType,
        date_from: date | None = None,
        date_to: date | None = None,
        **parameters,
    ) -> ReportMetadata:
        """Build report metadata with injected clock timestamp."""
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=self._config.currency,
            generated_at=self._clock.now().isoformat(),
            date_from=date_from,
            date_to=date_to,
            parameters=tuple(
                (key, str(value)) for key, value in sorted(parameters.items()) if value is not None
            ),
        )

    @staticmethod
    def _check_range(date_from: date, date_to: date) -> None:
        if date_from > date_to:
            raise ValidationError(
                f"date_from {date_from.isoformat()} is after date_to {date_to.isoformat()}",
                field="date_from",
            )

    @staticmethod
    def _check_level(value: int | None, field: str) -> None:
        if value is not None and value < 1:
            raise ValidationError(f"{field} must be at least 1, got {value}", field=field)

    # =========================================================================
    # Libro Diario
    # =========================================================================

    def libro_diario(
        self,
        date_from: date,
        date_to: date,
        *,
        account_prefix: str | None = None,
        origin: EntryOrigin | None = None,
        include_voided: bool = False,
        page: int = 1,
        page_size: int | None = None,
    ) -> LibroDiarioReport:
        """
        Journal book: every line of the range in (date, number, line) order.

        Args:
            date_from: First entry date included.
            date_to: Last entry date included.
            account_prefix: Only lines on accounts with this code prefix.
            origin: Only entries of this origin.
            include_voided: Also list voided entries and their
                compensating entries.
            page: 1-based page number.
            page_size: Lines per page (defaults to config).
        """
        self._check_range(date_from, date_to)
        size = page_size or self._config.diario_page_size
        if page < 1 or size < 1:
            raise ValidationError(f"Invalid page {page} of size {size}", field="page")

        filters = dict(
            account_prefix=account_prefix,
            origin=origin,
            include_voided=include_voided,
        )
        totals = self._ledger.journal_line_totals(date_from, date_to, **filters)
        rows = self._ledger.journal_lines(
            date_from, date_to, offset=(page - 1) * size, limit=size, **filters
        )

        metadata = self._build_metadata(
            ReportType.LIBRO_DIARIO,
            date_from,
            date_to,
            account_prefix=account_prefix,
            origin=EntryOrigin(origin).value if origin is not None else None,
            include_voided=include_voided,
            page=page,
            page_size=size,
        )
        report = build_libro_diario(rows, totals, metadata, page, size, self._places)

        logger.info(
            "libro_diario_generated",
            extra={
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "page": page,
                "line_count": len(report.lineas),
                "total_lines": totals.line_count,
                "is_balanced": report.totales.cuadrado,
            },
        )
        return report

    # =========================================================================
    # Libro Mayor
    # =========================================================================

    def libro_mayor(
        self,
        *,
        date_from: date,
        date_to: date,
        account_code: str | None = None,
        code_from: str | None = None,
        code_to: str | None = None,
        include_empty: bool = False,
    ) -> LibroMayorReport:
        """
        General ledger of one account or of a code range.

        A group account code expands to its postable descendants.  Without
        ``include_empty`` only accounts with an opening balance or an
        in-range movement are listed.

        Raises:
            AccountNotFoundError: ``account_code`` does not exist.
        """
        self._check_range(date_from, date_to)

        if account_code is not None:
            account = self._accounts.get_by_code(account_code)
            if account is None:
                raise AccountNotFoundError(account_code)
            if account.is_postable:
                candidates = [AccountDTO.from_model(account)]
            else:
                candidates = self._accounts.list_accounts(
                    postable=True, active=None, code_prefix=account_code
                )
            selection = dict(code_prefix=account_code)
        else:
            candidates = [
                a
                for a in self._accounts.list_accounts(postable=True, active=None)
                if in_code_range(a.code, code_from, code_to)
            ]
            selection = dict(code_from=code_from, code_to=code_to)

        opening = {r.account_code: r for r in self._ledger.account_totals(before=date_from, **selection)}
        in_range = {
            r.account_code: r
            for r in self._ledger.account_totals(date_from=date_from, date_to=date_to, **selection)
        }

        accounts = []
        for candidate in candidates:
            has_activity = candidate.code in opening or candidate.code in in_range
            if not has_activity and not include_empty:
                continue
            movements = (
                self._ledger.account_movements(candidate.code, date_from, date_to)
                if candidate.code in in_range
                else []
            )
            opening_row = opening.get(candidate.code)
            accounts.append(
                build_mayor_account(
                    code=candidate.code,
                    name=candidate.name,
                    nature=candidate.nature,
                    opening_debit=opening_row.debit if opening_row else ZERO,
                    opening_credit=opening_row.credit if opening_row else ZERO,
                    movements=movements,
                    places=self._places,
                )
            )

        metadata = self._build_metadata(
            ReportType.LIBRO_MAYOR,
            date_from,
            date_to,
            account_code=account_code,
            code_from=code_from,
            code_to=code_to,
            include_empty=include_empty,
        )
        report = build_libro_mayor(accounts, metadata)

        logger.info(
            "libro_mayor_generated",
            extra={
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "account_code": account_code,
                "account_count": len(report.cuentas),
            },
        )
        return report

    # =========================================================================
    # Balance de Sumas y Saldos
    # =========================================================================

    def sumas_y_saldos(
        self,
        date_from: date,
        date_to: date,
        *,
        grouping_level: int | None = None,
        only_with_movement: bool = True,
        code_from: str | None = None,
        code_to: str | None = None,
    ) -> SumasYSaldosReport:
        """
        Trial balance of sums and balances over a date range.

        Args:
            date_from: First entry date included.
            date_to: Last entry date included.
            grouping_level: Aggregate by code prefix of this many digits;
                None lists each account.
            only_with_movement: Leave out accounts without lines in range.
            code_from: Lowest account code included.
            code_to: Highest account code included.
        """
        self._check_range(date_from, date_to)
        self._check_level(grouping_level, "grouping_level")

        rows = self._ledger.account_totals(
            date_from=date_from, date_to=date_to, code_from=code_from, code_to=code_to
        )
        accounts = self._load_accounts()
        names = {a.code: a.name for a in accounts}
        catalogue = ()
        if not only_with_movement:
            catalogue = tuple(
                (a.code, a.name, a.account_type)
                for a in accounts
                if a.is_postable and a.is_active and in_code_range(a.code, code_from, code_to)
            )

        metadata = self._build_metadata(
            ReportType.SUMAS_Y_SALDOS,
            date_from,
            date_to,
            grouping_level=grouping_level,
            only_with_movement=only_with_movement,
            code_from=code_from,
            code_to=code_to,
        )
        report = build_sumas_y_saldos(
            rows, names, metadata, grouping_level, catalogue, self._places
        )

        log = logger.info
        if not (report.resumen.cuadrado_sumas and report.resumen.cuadrado_saldos):
            log = logger.warning
        log(
            "sumas_y_saldos_generated",
            extra={
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "row_count": len(report.cuentas),
                "sums_balanced": report.resumen.cuadrado_sumas,
                "balances_balanced": report.resumen.cuadrado_saldos,
                "difference": str(report.resumen.diferencia_sumas),
            },
        )
        return report

    # =========================================================================
    # Balance de Situación
    # =========================================================================

    def balance_situacion(
        self,
        as_of: date,
        *,
        detail_level: int = 3,
        include_empty: bool = False,
    ) -> BalanceSituacionReport:
        """
        Balance sheet at ``as_of``.

        The year's result is the result-group balance from 1 January of
        ``as_of``'s year; earlier result-group balances not yet closed to
        equity show as results of prior years.
        """
        self._check_level(detail_level, "detail_level")

        cumulative = self._ledger.account_totals(date_to=as_of)
        current_year = self._ledger.account_totals(
            date_from=date(as_of.year, 1, 1), date_to=as_of
        )

        metadata = self._build_metadata(
            ReportType.BALANCE_SITUACION,
            date_to=as_of,
            detail_level=detail_level,
            include_empty=include_empty,
        )
        report = build_balance_situacion(
            cumulative,
            current_year,
            self._account_names(),
            self._config.balance_sheet,
            metadata,
            detail_level=detail_level,
            include_empty=include_empty,
            places=self._places,
        )

        log = logger.info if report.cuadrado else logger.warning
        log(
            "balance_situacion_generated",
            extra={
                "as_of": as_of.isoformat(),
                "total_activo": str(report.total_activo),
                "total_patrimonio_neto_y_pasivo": str(report.total_patrimonio_neto_y_pasivo),
                "is_balanced": report.cuadrado,
                "difference": str(report.diferencia),
            },
        )
        return report

    # =========================================================================
    # Cuenta de Pérdidas y Ganancias
    # =========================================================================

    def cuenta_resultados(
        self,
        date_from: date,
        date_to: date,
        *,
        detail_level: int = 3,
        compare_with_prior_year: bool = False,
    ) -> CuentaResultadosReport:
        """
        Income statement over a date range.

        With ``compare_with_prior_year`` the report carries the statement of
        the same dates one year earlier in ``ejercicio_anterior``.
        """
        self._check_range(date_from, date_to)
        self._check_level(detail_level, "detail_level")
        names = self._account_names()

        prior = None
        if compare_with_prior_year:
            prior = self._income_statement(
                shift_year(date_from), shift_year(date_to), detail_level, names
            )
        report = self._income_statement(date_from, date_to, detail_level, names, prior)

        logger.info(
            "cuenta_resultados_generated",
            extra={
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "detail_level": detail_level,
                "resultado_ejercicio": str(report.resultado_ejercicio),
                "with_prior_year": prior is not None,
            },
        )
        return report

    def cuenta_resultados_resumida(
        self,
        date_from: date,
        date_to: date,
    ) -> CuentaResultadosResumida:
        """Management summary: sales, gross margin, EBITDA and net result."""
        self._check_range(date_from, date_to)
        full = self._income_statement(date_from, date_to, 2, self._account_names())

        metadata = self._build_metadata(
            ReportType.CUENTA_RESULTADOS_RESUMIDA, date_from, date_to
        )
        report = build_cuenta_resultados_resumida(
            full,
            self._config.income_statement,
            metadata,
            cost_of_sales_keys=self._config.cost_of_sales_keys,
            depreciation_keys=self._config.depreciation_keys,
        )

        logger.info(
            "cuenta_resultados_resumida_generated",
            extra={
                "date_from": date_from.isoformat(),
                "date_to": date_to.isoformat(),
                "ebitda": str(report.ebitda),
                "resultado_neto": str(report.resultado_neto),
            },
        )
        return report

    def _income_statement(
        self,
        date_from: date,
        date_to: date,
        detail_level: int,
        names: dict[str, str],
        prior: CuentaResultadosReport | None = None,
    ) -> CuentaResultadosReport:
        layout = self._config.income_statement
        rows = self._ledger.account_totals(date_from=date_from, date_to=date_to)

        skipped = unclassified_codes(rows, layout)
        if skipped:
            logger.warning(
                "income_statement_unclassified_accounts",
                extra={"account_codes": list(skipped)},
            )

        metadata = self._build_metadata(
            ReportType.CUENTA_RESULTADOS,
            date_from,
            date_to,
            detail_level=detail_level,
        )
        return build_cuenta_resultados(
            rows,
            names,
            layout,
            metadata,
            detail_level=detail_level,
            places=self._places,
            prior_year=prior,
        )
