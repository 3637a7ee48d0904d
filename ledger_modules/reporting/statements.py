"""
Pure statutory report transformation functions.

These functions turn ledger selector rows into the Spanish books and
statements.  ZERO I/O. ZERO side effects.

All monetary values are Decimal.  Sums are accumulated unrounded;
presented amounts are rounded to ``places`` decimals at the end, and
reconciliation flags are computed before rounding.

Functions in this module follow the ledger_kernel/domain/ purity
convention:
- No database access
- No clock access
- No file I/O
- Deterministic: same inputs always produce same outputs
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.db.types import BALANCE_TOLERANCE, ZERO, round_money
from ledger_kernel.domain.classification import (
    AccountType,
    Nature,
    account_level,
    classify,
    natural_balance,
)
from ledger_kernel.domain.report_layout import (
    BalanceSheetLayout,
    IncomeStatementLayout,
    ResultBlock,
    SectionKind,
)
from ledger_kernel.selectors.ledger_selector import (
    AccountTotalsRow,
    LedgerLineRow,
    LineTotals,
)
from ledger_modules.reporting.models import (
    BalanceSection,
    BalanceSituacionReport,
    CuentaResultadosReport,
    CuentaResultadosResumida,
    DiarioLine,
    DiarioTotals,
    IncomeStatementSection,
    LibroDiarioReport,
    LibroMayorReport,
    MayorAccount,
    MayorMovement,
    ReportMetadata,
    StatementLine,
    SumasYSaldosReport,
    SumasYSaldosResumen,
    SumasYSaldosRow,
)

# Presented amounts below this round to zero
_DISPLAY_EPSILON = Decimal("0.005")


# =========================================================================
# Helpers
# =========================================================================


def reconciles(left: Decimal, right: Decimal) -> bool:
    """Two totals agree within the ledger's balance tolerance."""
    return abs(left - right) < BALANCE_TOLERANCE


def group_key(code: str, length: int | None) -> str:
    """
    Aggregation key of an account code: its first ``length`` digits.

    Codes shorter than ``length`` (and every code when length is None)
    are their own key.
    """
    if length is None or len(code) <= length:
        return code
    return code[:length]


def _starts(code: str, prefixes: Iterable[str]) -> bool:
    return any(code.startswith(p) for p in prefixes)


@dataclass
class _Accumulator:
    """Mutable running sums for one aggregated code."""

    code: str
    name: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    amount: Decimal = ZERO


def _accumulate(
    accumulators: dict[str, _Accumulator],
    key: str,
    fallback_name: str,
    names: Mapping[str, str],
) -> _Accumulator:
    acc = accumulators.get(key)
    if acc is None:
        acc = _Accumulator(code=key, name=names.get(key) or fallback_name)
        accumulators[key] = acc
    return acc


def _statement_lines(
    accumulators: Mapping[str, _Accumulator],
    places: int,
    include_empty: bool,
) -> tuple[StatementLine, ...]:
    return tuple(
        StatementLine(codigo=acc.code, nombre=acc.name, importe=round_money(acc.amount, places))
        for acc in sorted(accumulators.values(), key=lambda a: a.code)
        if include_empty or abs(acc.amount) >= _DISPLAY_EPSILON
    )


# =========================================================================
# Libro Diario
# =========================================================================


def build_libro_diario(
    rows: Sequence[LedgerLineRow],
    totals: LineTotals,
    metadata: ReportMetadata,
    page: int,
    page_size: int,
    places: int = 2,
) -> LibroDiarioReport:
    """
    One page of the journal book.

    ``totals`` covers the whole filtered set, so the grand totals do not
    depend on the page shown.
    """
    lines = tuple(
        DiarioLine(
            numero=row.number,
            fecha=row.entry_date,
            ejercicio=row.fiscal_year,
            concepto=row.description,
            origen=row.origin,
            estado=row.status,
            orden=row.line_no,
            cuenta_codigo=row.account_code,
            cuenta_nombre=row.account_name,
            debe=round_money(row.debit, places),
            haber=round_money(row.credit, places),
            concepto_linea=row.memo,
            tercero_nombre=row.party_name,
            documento_ref=row.document_ref,
        )
        for row in rows
    )
    difference = totals.total_debit - totals.total_credit
    return LibroDiarioReport(
        metadata=metadata,
        lineas=lines,
        totales=DiarioTotals(
            total_debe=round_money(totals.total_debit, places),
            total_haber=round_money(totals.total_credit, places),
            num_asientos=totals.entry_count,
            num_lineas=totals.line_count,
            cuadrado=reconciles(totals.total_debit, totals.total_credit),
            diferencia=round_money(difference, places),
        ),
        pagina=page,
        tamano_pagina=page_size,
        total_paginas=math.ceil(totals.line_count / page_size) if totals.line_count else 0,
    )


# =========================================================================
# Libro Mayor
# =========================================================================


def build_mayor_account(
    code: str,
    name: str,
    nature: Nature,
    opening_debit: Decimal,
    opening_credit: Decimal,
    movements: Sequence[LedgerLineRow],
    places: int = 2,
) -> MayorAccount:
    """
    Ledger of one account.

    The opening balance nets every line dated before the range; each
    movement carries the running balance after it, on the account's
    natural side.
    """
    opening = natural_balance(nature, opening_debit, opening_credit)
    balance = opening
    total_debit = ZERO
    total_credit = ZERO
    items = []
    for row in movements:
        balance += natural_balance(nature, row.debit, row.credit)
        total_debit += row.debit
        total_credit += row.credit
        items.append(
            MayorMovement(
                fecha=row.entry_date,
                numero=row.number,
                concepto=row.description,
                concepto_linea=row.memo,
                debe=round_money(row.debit, places),
                haber=round_money(row.credit, places),
                saldo=round_money(balance, places),
                tercero_nombre=row.party_name,
                documento_ref=row.document_ref,
            )
        )
    return MayorAccount(
        cuenta_codigo=code,
        cuenta_nombre=name,
        naturaleza=nature,
        saldo_inicial=round_money(opening, places),
        movimientos=tuple(items),
        total_debe=round_money(total_debit, places),
        total_haber=round_money(total_credit, places),
        saldo_final=round_money(balance, places),
    )


def build_libro_mayor(
    accounts: Sequence[MayorAccount],
    metadata: ReportMetadata,
) -> LibroMayorReport:
    ordered = tuple(sorted(accounts, key=lambda a: a.cuenta_codigo))
    return LibroMayorReport(
        metadata=metadata,
        cuentas=ordered,
        total_debe=sum((a.total_debe for a in ordered), ZERO),
        total_haber=sum((a.total_haber for a in ordered), ZERO),
    )


# =========================================================================
# Balance de Sumas y Saldos
# =========================================================================


def build_sumas_y_saldos(
    rows: Sequence[AccountTotalsRow],
    names: Mapping[str, str],
    metadata: ReportMetadata,
    grouping_level: int | None = None,
    catalogue: Sequence[tuple[str, str, AccountType]] = (),
    places: int = 2,
) -> SumasYSaldosReport:
    """
    Trial balance of sums and balances.

    Args:
        rows: Per-account debit/credit sums over the period.
        names: Account names by code, for aggregated codes.
        metadata: Report metadata.
        grouping_level: Aggregate by code prefix of this many digits
            (None: one row per account).
        catalogue: (code, name, type) of accounts to show even without
            movement.
        places: Display precision.

    Each row's balance goes to saldo_deudor or saldo_acreedor by the sign
    of suma_debe - suma_haber.  The resumen carries two independent
    checks: debits equal credits, and debtor balances equal creditor
    balances.
    """
    groups: dict[str, _Accumulator] = {}
    types: dict[str, AccountType] = {}

    for code, name, account_type in catalogue:
        key = group_key(code, grouping_level)
        _accumulate(groups, key, name, names)
        types.setdefault(key, account_type if key == code else classify(key).account_type)

    for row in rows:
        key = group_key(row.account_code, grouping_level)
        acc = _accumulate(groups, key, row.account_name, names)
        acc.debit += row.debit
        acc.credit += row.credit
        types.setdefault(
            key, row.account_type if key == row.account_code else classify(key).account_type
        )

    result_rows = []
    total_debit = total_credit = total_debtor = total_creditor = ZERO
    for acc in sorted(groups.values(), key=lambda a: a.code):
        diff = acc.debit - acc.credit
        debtor = diff if diff > ZERO else ZERO
        creditor = -diff if diff < ZERO else ZERO
        total_debit += acc.debit
        total_credit += acc.credit
        total_debtor += debtor
        total_creditor += creditor
        result_rows.append(
            SumasYSaldosRow(
                codigo=acc.code,
                nombre=acc.name,
                tipo=types[acc.code],
                nivel=account_level(acc.code),
                suma_debe=round_money(acc.debit, places),
                suma_haber=round_money(acc.credit, places),
                saldo_deudor=round_money(debtor, places),
                saldo_acreedor=round_money(creditor, places),
            )
        )

    return SumasYSaldosReport(
        metadata=metadata,
        cuentas=tuple(result_rows),
        resumen=SumasYSaldosResumen(
            total_debe=round_money(total_debit, places),
            total_haber=round_money(total_credit, places),
            total_saldo_deudor=round_money(total_debtor, places),
            total_saldo_acreedor=round_money(total_creditor, places),
            cuadrado_sumas=reconciles(total_debit, total_credit),
            cuadrado_saldos=reconciles(total_debtor, total_creditor),
            diferencia_sumas=round_money(total_debit - total_credit, places),
            diferencia_saldos=round_money(total_debtor - total_creditor, places),
        ),
    )


# =========================================================================
# Balance de Situación
# =========================================================================

ACTIVO_NO_CORRIENTE = "activo_no_corriente"
ACTIVO_CORRIENTE = "activo_corriente"
PATRIMONIO_NETO = "patrimonio_neto"
PASIVO_NO_CORRIENTE = "pasivo_no_corriente"
PASIVO_CORRIENTE = "pasivo_corriente"

BALANCE_SECTION_NAMES = {
    ACTIVO_NO_CORRIENTE: "Activo no corriente",
    ACTIVO_CORRIENTE: "Activo corriente",
    PATRIMONIO_NETO: "Patrimonio neto",
    PASIVO_NO_CORRIENTE: "Pasivo no corriente",
    PASIVO_CORRIENTE: "Pasivo corriente",
}

_ASSET_BUCKETS = (ACTIVO_NO_CORRIENTE, ACTIVO_CORRIENTE)


def balance_bucket(code: str, account_type: AccountType, layout: BalanceSheetLayout) -> str | None:
    """
    Balance-sheet bucket of a postable account; None for result accounts
    (groups 6 and 7) and codes outside every rule.
    """
    if _starts(code, layout.result_groups):
        return None
    if _starts(code, layout.non_current_assets):
        return ACTIVO_NO_CORRIENTE
    if _starts(code, layout.current_assets):
        return ACTIVO_CORRIENTE
    if _starts(code, layout.equity):
        return PATRIMONIO_NETO
    if _starts(code, layout.non_current_liabilities):
        return PASIVO_NO_CORRIENTE
    if _starts(code, layout.split_by_type):
        return ACTIVO_CORRIENTE if account_type == AccountType.ASSET else PASIVO_CORRIENTE
    return None


def period_result(rows: Iterable[AccountTotalsRow], layout: BalanceSheetLayout) -> Decimal:
    """Income credit balance minus expense debit balance over the rows."""
    return sum(
        (row.credit - row.debit for row in rows if _starts(row.account_code, layout.result_groups)),
        ZERO,
    )


def build_balance_situacion(
    cumulative_rows: Sequence[AccountTotalsRow],
    current_year_rows: Sequence[AccountTotalsRow],
    names: Mapping[str, str],
    layout: BalanceSheetLayout,
    metadata: ReportMetadata,
    detail_level: int = 3,
    include_empty: bool = False,
    places: int = 2,
) -> BalanceSituacionReport:
    """
    Balance sheet at a cutoff date.

    Args:
        cumulative_rows: Per-account sums of every line up to the cutoff.
        current_year_rows: Per-account sums from the start of the cutoff's
            fiscal year up to the cutoff; their result-group balance is
            the year's result.
        names: Account names by code, for aggregated codes.
        layout: Bucket prefix rules.
        metadata: Report metadata.
        detail_level: Aggregate lines by code prefix of this many digits.
        include_empty: Keep lines whose amount is zero.
        places: Display precision.

    Each bucket nets on its natural side (assets debit - credit, equity and
    liabilities credit - debit).  The year's result and any result of
    earlier years not yet closed to equity are folded into patrimonio
    neto.  ``cuadrado`` compares assets with equity plus liabilities
    within 0.01 and ``diferencia`` reports the gap.
    """
    buckets: dict[str, dict[str, _Accumulator]] = {key: {} for key in BALANCE_SECTION_NAMES}

    for row in cumulative_rows:
        if not row.is_postable:
            continue
        bucket = balance_bucket(row.account_code, row.account_type, layout)
        if bucket is None:
            continue
        key = group_key(row.account_code, detail_level)
        acc = _accumulate(buckets[bucket], key, row.account_name, names)
        if bucket in _ASSET_BUCKETS:
            acc.amount += row.debit - row.credit
        else:
            acc.amount += row.credit - row.debit

    current_result = period_result(current_year_rows, layout)
    prior_result = period_result(cumulative_rows, layout) - current_result

    equity = buckets[PATRIMONIO_NETO]
    if current_result != ZERO:
        key = group_key(layout.result_account, detail_level)
        _accumulate(equity, key, layout.result_label, {}).amount += current_result
    if prior_result != ZERO:
        key = group_key(layout.prior_result_account, detail_level)
        _accumulate(equity, key, layout.prior_result_label, {}).amount += prior_result

    sections = {}
    raw_totals = {}
    for key, accumulators in buckets.items():
        raw_totals[key] = sum((acc.amount for acc in accumulators.values()), ZERO)
        sections[key] = BalanceSection(
            key=key,
            nombre=BALANCE_SECTION_NAMES[key],
            lineas=_statement_lines(accumulators, places, include_empty),
            total=round_money(raw_totals[key], places),
        )

    assets = raw_totals[ACTIVO_NO_CORRIENTE] + raw_totals[ACTIVO_CORRIENTE]
    net_equity = raw_totals[PATRIMONIO_NETO]
    liabilities = raw_totals[PASIVO_NO_CORRIENTE] + raw_totals[PASIVO_CORRIENTE]
    difference = assets - (net_equity + liabilities)

    return BalanceSituacionReport(
        metadata=metadata,
        activo_no_corriente=sections[ACTIVO_NO_CORRIENTE],
        activo_corriente=sections[ACTIVO_CORRIENTE],
        patrimonio_neto=sections[PATRIMONIO_NETO],
        pasivo_no_corriente=sections[PASIVO_NO_CORRIENTE],
        pasivo_corriente=sections[PASIVO_CORRIENTE],
        total_activo=round_money(assets, places),
        total_patrimonio_neto=round_money(net_equity, places),
        total_pasivo=round_money(liabilities, places),
        total_patrimonio_neto_y_pasivo=round_money(net_equity + liabilities, places),
        resultado_ejercicio=round_money(current_result, places),
        resultados_anteriores=round_money(prior_result, places),
        cuadrado=abs(difference) < BALANCE_TOLERANCE,
        diferencia=round_money(difference, places),
    )


# =========================================================================
# Cuenta de Pérdidas y Ganancias
# =========================================================================


def unclassified_codes(rows: Iterable[AccountTotalsRow], layout: IncomeStatementLayout) -> tuple[str, ...]:
    """Result-group codes (6, 7) with movement that no section takes."""
    return tuple(
        row.account_code
        for row in rows
        if row.account_code[:1] in ("6", "7") and layout.section_for(row.account_code) is None
    )


def build_cuenta_resultados(
    rows: Sequence[AccountTotalsRow],
    names: Mapping[str, str],
    layout: IncomeStatementLayout,
    metadata: ReportMetadata,
    detail_level: int = 3,
    places: int = 2,
    prior_year: CuentaResultadosReport | None = None,
) -> CuentaResultadosReport:
    """
    Income statement over a date range.

    Each account goes to the first layout section whose prefixes match;
    income sections net credit - debit and expense sections debit -
    credit.  Lines aggregate by code prefix of ``detail_level`` digits and
    lines that round to zero are left out.

        resultado_explotacion     = operating income - operating expense
        resultado_financiero      = financial income - financial expense
        resultado_antes_impuestos = explotacion + financiero
        resultado_ejercicio       = antes_impuestos - impuesto
    """
    per_section: dict[str, dict[str, _Accumulator]] = {s.key: {} for s in layout.sections}

    for row in rows:
        section = layout.section_for(row.account_code)
        if section is None:
            continue
        key = group_key(row.account_code, detail_level)
        acc = _accumulate(per_section[section.key], key, row.account_name, names)
        if section.kind == SectionKind.INCOME:
            acc.amount += row.credit - row.debit
        else:
            acc.amount += row.debit - row.credit

    sections = []
    raw: dict[str, Decimal] = {}
    for section in layout.sections:
        accumulators = per_section[section.key]
        raw[section.key] = sum((acc.amount for acc in accumulators.values()), ZERO)
        sections.append(
            IncomeStatementSection(
                key=section.key,
                nombre=section.label,
                tipo=section.kind.value,
                bloque=section.block.value,
                lineas=_statement_lines(accumulators, places, include_empty=False),
                total=round_money(raw[section.key], places),
            )
        )

    def block_result(block: ResultBlock) -> Decimal:
        income = sum((raw[k] for k in layout.keys(block=block, kind=SectionKind.INCOME)), ZERO)
        expense = sum((raw[k] for k in layout.keys(block=block, kind=SectionKind.EXPENSE)), ZERO)
        return income - expense

    operating = block_result(ResultBlock.OPERATING)
    financial = block_result(ResultBlock.FINANCIAL)
    tax = -block_result(ResultBlock.TAX)
    before_tax = operating + financial

    total_income = sum((raw[k] for k in layout.keys(kind=SectionKind.INCOME)), ZERO)
    total_expense = sum((raw[k] for k in layout.keys(kind=SectionKind.EXPENSE)), ZERO)

    return CuentaResultadosReport(
        metadata=metadata,
        secciones=tuple(sections),
        total_ingresos=round_money(total_income, places),
        total_gastos=round_money(total_expense, places),
        resultado_explotacion=round_money(operating, places),
        resultado_financiero=round_money(financial, places),
        resultado_antes_impuestos=round_money(before_tax, places),
        impuesto_beneficios=round_money(tax, places),
        resultado_ejercicio=round_money(before_tax - tax, places),
        ejercicio_anterior=prior_year,
    )


def build_cuenta_resultados_resumida(
    report: CuentaResultadosReport,
    layout: IncomeStatementLayout,
    metadata: ReportMetadata,
    cost_of_sales_keys: Sequence[str] = ("aprovisionamientos",),
    depreciation_keys: Sequence[str] = ("amortizaciones",),
) -> CuentaResultadosResumida:
    """
    Management summary derived from a full income statement.

        ventas            = operating income sections
        coste_ventas      = cost-of-sales sections
        margen_bruto      = ventas - coste_ventas
        gastos_operativos = remaining operating expense sections
        ebitda            = margen_bruto - gastos_operativos
        resultado_explotacion = ebitda - amortizaciones
    """
    totals = {section.key: section.total for section in report.secciones}

    def total_of(keys: Iterable[str]) -> Decimal:
        return sum((totals.get(k, ZERO) for k in keys), ZERO)

    operating_income = layout.keys(block=ResultBlock.OPERATING, kind=SectionKind.INCOME)
    operating_expense = layout.keys(block=ResultBlock.OPERATING, kind=SectionKind.EXPENSE)

    sales = total_of(operating_income)
    cost_of_sales = total_of(k for k in operating_expense if k in cost_of_sales_keys)
    depreciation = total_of(k for k in operating_expense if k in depreciation_keys)
    operating_costs = total_of(
        k for k in operating_expense
        if k not in cost_of_sales_keys and k not in depreciation_keys
    )

    gross_margin = sales - cost_of_sales
    ebitda = gross_margin - operating_costs
    return CuentaResultadosResumida(
        metadata=metadata,
        ventas=sales,
        coste_ventas=cost_of_sales,
        margen_bruto=gross_margin,
        gastos_operativos=operating_costs,
        ebitda=ebitda,
        amortizaciones=depreciation,
        resultado_explotacion=ebitda - depreciation,
        resultado_financiero=report.resultado_financiero,
        resultado_antes_impuestos=report.resultado_antes_impuestos,
        impuestos=report.impuesto_beneficios,
        resultado_neto=report.resultado_ejercicio,
    )
