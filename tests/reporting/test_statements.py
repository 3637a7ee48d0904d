"""
Tests for the pure statement builders in ledger_modules.reporting.statements.

No database: inputs are hand-built selector rows.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.classification import AccountType, Nature, classify
from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus
from ledger_kernel.domain.report_layout import (
    DEFAULT_INCOME_STATEMENT_LAYOUT,
    BalanceSheetLayout,
)
from ledger_kernel.selectors.ledger_selector import (
    AccountTotalsRow,
    LedgerLineRow,
    LineTotals,
)
from ledger_modules.reporting.models import ReportMetadata, ReportType
from ledger_modules.reporting.statements import (
    ACTIVO_CORRIENTE,
    PASIVO_CORRIENTE,
    PATRIMONIO_NETO,
    balance_bucket,
    build_balance_situacion,
    build_cuenta_resultados,
    build_cuenta_resultados_resumida,
    build_libro_diario,
    build_mayor_account,
    build_sumas_y_saldos,
    group_key,
    reconciles,
    unclassified_codes,
)

LAYOUT = BalanceSheetLayout()
NAMES = {
    "43": "Clientes, efectos comerciales a cobrar y otras cuentas a cobrar",
    "430": "Clientes",
    "57": "Tesorería",
    "572": "Bancos",
    "64": "Gastos de personal",
    "70": "Ventas de mercaderías",
    "120": "Remanente",
    "129": "Resultado del ejercicio",
}


def metadata(report_type=ReportType.SUMAS_Y_SALDOS) -> ReportMetadata:
    return ReportMetadata(
        report_type=report_type,
        entity_name="Empresa de prueba SL",
        currency="EUR",
        generated_at="2024-06-30T12:00:00+00:00",
    )


def totals_row(code, debit="0", credit="0", account_type=None, postable=True) -> AccountTotalsRow:
    classification = classify(code)
    return AccountTotalsRow(
        account_id=uuid4(),
        account_code=code,
        account_name=f"Cuenta {code}",
        account_type=account_type or classification.account_type,
        nature=classification.nature,
        is_postable=postable,
        debit=Decimal(debit),
        credit=Decimal(credit),
        line_count=1,
    )


def line_row(number, line_no, code, debit="0", credit="0", entry_date=date(2024, 1, 10)) -> LedgerLineRow:
    return LedgerLineRow(
        entry_id=uuid4(),
        number=number,
        entry_date=entry_date,
        fiscal_year=entry_date.year,
        description=f"Asiento {number}",
        origin=EntryOrigin.MANUAL,
        status=EntryStatus.POSTED,
        line_no=line_no,
        account_code=code,
        account_name=f"Cuenta {code}",
        debit=Decimal(debit),
        credit=Decimal(credit),
        memo=None,
        party_name=None,
        document_ref=None,
    )


class TestHelpers:
    @pytest.mark.parametrize(
        "code, length, expected",
        [("4300001", 3, "430"), ("430", 3, "430"), ("57", 3, "57"), ("4300001", None, "4300001")],
    )
    def test_group_key(self, code, length, expected):
        assert group_key(code, length) == expected

    def test_reconciles_within_a_cent(self):
        assert reconciles(Decimal("100.00"), Decimal("100.009"))
        assert not reconciles(Decimal("100.00"), Decimal("100.01"))

    @pytest.mark.parametrize(
        "code, account_type, expected",
        [
            ("213", AccountType.ASSET, "activo_no_corriente"),
            ("300", AccountType.ASSET, ACTIVO_CORRIENTE),
            ("100", AccountType.EQUITY, PATRIMONIO_NETO),
            ("170", AccountType.LIABILITY, "pasivo_no_corriente"),
            ("430", AccountType.ASSET, ACTIVO_CORRIENTE),
            ("4770", AccountType.LIABILITY, PASIVO_CORRIENTE),
            ("437", AccountType.LIABILITY, PASIVO_CORRIENTE),
            ("572", AccountType.ASSET, ACTIVO_CORRIENTE),
            ("700", AccountType.INCOME, None),
        ],
    )
    def test_balance_bucket(self, code, account_type, expected):
        assert balance_bucket(code, account_type, LAYOUT) == expected


class TestLibroDiario:
    def test_totals_and_pages(self):
        rows = [line_row(1, 1, "572", debit="100"), line_row(1, 2, "700", credit="100")]
        totals = LineTotals(Decimal("250"), Decimal("250"), entry_count=3, line_count=5)

        report = build_libro_diario(rows, totals, metadata(ReportType.LIBRO_DIARIO), 1, 2)

        assert [(l.numero, l.orden, l.cuenta_codigo) for l in report.lineas] == [
            (1, 1, "572"),
            (1, 2, "700"),
        ]
        assert report.totales.total_debe == Decimal("250.00")
        assert report.totales.num_asientos == 3
        assert report.totales.cuadrado is True
        assert report.total_paginas == 3

    def test_unbalanced_totals_surface(self):
        totals = LineTotals(Decimal("100"), Decimal("90"), entry_count=1, line_count=2)
        report = build_libro_diario([], totals, metadata(ReportType.LIBRO_DIARIO), 1, 50)
        assert report.totales.cuadrado is False
        assert report.totales.diferencia == Decimal("10.00")

    def test_empty(self):
        report = build_libro_diario(
            [], LineTotals(Decimal("0"), Decimal("0"), 0, 0), metadata(ReportType.LIBRO_DIARIO), 1, 50
        )
        assert report.total_paginas == 0
        assert report.totales.cuadrado is True


class TestMayorAccount:
    def test_running_balance_on_natural_side(self):
        account = build_mayor_account(
            "700",
            "Ventas",
            Nature.CREDIT,
            opening_debit=Decimal("0"),
            opening_credit=Decimal("100"),
            movements=[
                line_row(3, 2, "700", credit="50", entry_date=date(2024, 2, 1)),
                line_row(4, 1, "700", debit="30", entry_date=date(2024, 2, 5)),
            ],
        )
        assert account.saldo_inicial == Decimal("100.00")
        assert [m.saldo for m in account.movimientos] == [Decimal("150.00"), Decimal("120.00")]
        assert account.total_debe == Decimal("30.00")
        assert account.total_haber == Decimal("50.00")
        assert account.saldo_final == Decimal("120.00")

    def test_no_movements(self):
        account = build_mayor_account("572", "Bancos", Nature.DEBIT, Decimal("40"), Decimal("0"), [])
        assert account.movimientos == ()
        assert account.saldo_inicial == account.saldo_final == Decimal("40.00")


class TestSumasYSaldos:
    ROWS = [
        totals_row("430", debit="1210"),
        totals_row("4300001", debit="500", credit="200"),
        totals_row("700", credit="1000"),
        totals_row("4770", credit="510"),
    ]

    def test_per_account(self):
        report = build_sumas_y_saldos(self.ROWS, NAMES, metadata())
        rows = {r.codigo: r for r in report.cuentas}

        assert rows["430"].saldo_deudor == Decimal("1210.00")
        assert rows["430"].saldo_acreedor == Decimal("0.00")
        assert rows["700"].suma_haber == Decimal("1000.00")
        assert rows["700"].saldo_acreedor == Decimal("1000.00")
        assert rows["4300001"].saldo_deudor == Decimal("300.00")
        assert rows["4300001"].nivel == 5

    def test_resumen_checks(self):
        resumen = build_sumas_y_saldos(self.ROWS, NAMES, metadata()).resumen
        assert resumen.total_debe == resumen.total_haber == Decimal("1710.00")
        assert resumen.total_saldo_deudor == resumen.total_saldo_acreedor == Decimal("1510.00")
        assert resumen.cuadrado_sumas and resumen.cuadrado_saldos

    def test_grouping_level(self):
        report = build_sumas_y_saldos(self.ROWS, NAMES, metadata(), grouping_level=2)

        assert [r.codigo for r in report.cuentas] == ["43", "47", "70"]
        clientes = report.cuentas[0]
        assert clientes.nombre == NAMES["43"]
        assert clientes.suma_debe == Decimal("1710.00")
        assert clientes.saldo_deudor == Decimal("1510.00")
        # No name for "47" in the map: falls back to the first account seen
        assert report.cuentas[1].nombre == "Cuenta 4770"

    def test_catalogue_rows_without_movement(self):
        report = build_sumas_y_saldos(
            self.ROWS, NAMES, metadata(), catalogue=[("572", "Bancos", AccountType.ASSET)]
        )
        bank = next(r for r in report.cuentas if r.codigo == "572")
        assert bank.suma_debe == bank.saldo_deudor == Decimal("0.00")

    def test_unbalanced_input_is_reported(self):
        report = build_sumas_y_saldos(
            [totals_row("572", debit="100"), totals_row("700", credit="90")], NAMES, metadata()
        )
        assert report.resumen.cuadrado_sumas is False
        assert report.resumen.diferencia_sumas == Decimal("10.00")


class TestBalanceSituacion:
    CURRENT = [
        totals_row("572", debit="3000", credit="800"),
        totals_row("100", credit="3000"),
        totals_row("600", debit="800"),
        totals_row("4300001", debit="1200"),
        totals_row("700", credit="1200"),
    ]
    PRIOR = [totals_row("572", debit="500"), totals_row("700", credit="500")]

    def _build(self, cumulative, current, **kwargs):
        return build_balance_situacion(
            cumulative, current, NAMES, LAYOUT, metadata(ReportType.BALANCE_SITUACION), **kwargs
        )

    def test_year_result_folds_into_equity(self):
        report = self._build(self.CURRENT, self.CURRENT)

        assert report.resultado_ejercicio == Decimal("400.00")
        assert report.resultados_anteriores == Decimal("0.00")
        assert report.total_activo == Decimal("3400.00")
        assert report.total_patrimonio_neto_y_pasivo == Decimal("3400.00")
        assert report.cuadrado is True
        equity = {l.codigo: l.importe for l in report.patrimonio_neto.lineas}
        assert equity == {"100": Decimal("3000.00"), "129": Decimal("400.00")}

    def test_detail_level_aggregates_subaccounts(self):
        report = self._build(self.CURRENT, self.CURRENT)
        assert [(l.codigo, l.nombre) for l in report.activo_corriente.lineas] == [
            ("430", "Clientes"),
            ("572", "Bancos"),
        ]

    def test_unclosed_prior_results(self):
        # The 2023 sale was never closed to equity
        cumulative = [
            totals_row("572", debit="3500", credit="800"),
            totals_row("100", credit="3000"),
            totals_row("600", debit="800"),
            totals_row("4300001", debit="1200"),
            totals_row("700", credit="1700"),
        ]
        report = self._build(cumulative, self.CURRENT)

        assert report.resultado_ejercicio == Decimal("400.00")
        assert report.resultados_anteriores == Decimal("500.00")
        assert {l.codigo for l in report.patrimonio_neto.lineas} == {"100", "120", "129"}
        assert report.cuadrado is True

    def test_type_splits_group_4(self):
        rows = [
            totals_row("430", debit="121"),
            totals_row("4770", credit="21"),
            totals_row("700", credit="100"),
        ]
        report = self._build(rows, rows)
        assert report.pasivo_corriente.total == Decimal("21.00")
        assert report.activo_corriente.total == Decimal("121.00")
        assert report.cuadrado is True

    def test_imbalance_surfaces(self):
        rows = [totals_row("572", debit="100"), totals_row("100", credit="90")]
        report = self._build(rows, rows)
        assert report.cuadrado is False
        assert report.diferencia == Decimal("10.00")

    def test_group_rows_skipped_and_empty_lines_hidden(self):
        rows = [
            totals_row("57", debit="999", postable=False),
            totals_row("572", debit="50", credit="50"),
        ]
        assert self._build(rows, rows).activo_corriente.lineas == ()
        shown = self._build(rows, rows, include_empty=True).activo_corriente.lineas
        assert [(l.codigo, l.importe) for l in shown] == [("572", Decimal("0.00"))]


class TestCuentaResultados:
    ROWS = [
        totals_row("700", credit="1200"),
        totals_row("600", debit="800"),
        totals_row("640", debit="100"),
        totals_row("629", debit="30"),
        totals_row("681", debit="50"),
        totals_row("769", credit="10"),
        totals_row("662", debit="20"),
        totals_row("630", debit="60"),
    ]

    def _build(self, rows=None, **kwargs):
        return build_cuenta_resultados(
            rows or self.ROWS,
            NAMES,
            DEFAULT_INCOME_STATEMENT_LAYOUT,
            metadata(ReportType.CUENTA_RESULTADOS),
            **kwargs,
        )

    def test_intermediate_results(self):
        report = self._build()

        assert report.resultado_explotacion == Decimal("220.00")
        assert report.resultado_financiero == Decimal("-10.00")
        assert report.resultado_antes_impuestos == Decimal("210.00")
        assert report.impuesto_beneficios == Decimal("60.00")
        assert report.resultado_ejercicio == Decimal("150.00")
        assert report.total_ingresos == Decimal("1210.00")
        assert report.total_gastos == Decimal("1060.00")

    def test_tax_account_not_in_other_expenses(self):
        report = self._build()
        assert report.seccion("otros_gastos_explotacion").total == Decimal("30.00")
        assert report.seccion("impuesto_beneficios").total == Decimal("60.00")

    def test_detail_level_two(self):
        report = self._build(detail_level=2)
        personal = report.seccion("gastos_personal").lineas
        assert [(l.codigo, l.nombre, l.importe) for l in personal] == [
            ("64", "Gastos de personal", Decimal("100.00"))
        ]

    def test_empty_sections_are_kept_without_lines(self):
        report = self._build()
        section = report.seccion("otros_ingresos_explotacion")
        assert section.lineas == ()
        assert section.total == Decimal("0.00")

    def test_unclassified_codes(self):
        rows = self.ROWS + [totals_row("720", credit="5")]
        assert unclassified_codes(rows, DEFAULT_INCOME_STATEMENT_LAYOUT) == ("720",)
        assert self._build(rows).total_ingresos == Decimal("1210.00")

    def test_resumida(self):
        full = self._build(detail_level=2)
        summary = build_cuenta_resultados_resumida(
            full, DEFAULT_INCOME_STATEMENT_LAYOUT, metadata(ReportType.CUENTA_RESULTADOS_RESUMIDA)
        )

        assert summary.ventas == Decimal("1200.00")
        assert summary.coste_ventas == Decimal("800.00")
        assert summary.margen_bruto == Decimal("400.00")
        assert summary.gastos_operativos == Decimal("130.00")
        assert summary.ebitda == Decimal("270.00")
        assert summary.amortizaciones == Decimal("50.00")
        assert summary.resultado_explotacion == full.resultado_explotacion
        assert summary.resultado_neto == Decimal("150.00")
