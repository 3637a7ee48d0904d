"""
Tests for ReportingService against a seeded ledger.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus
from ledger_kernel.exceptions import AccountNotFoundError, ValidationError
from ledger_modules.reporting import ReportingConfig, ReportingService, ReportType
from tests.conftest import draft, line

YEAR_START = date(2024, 1, 1)
YEAR_END = date(2024, 12, 31)


@pytest.fixture
def books(post_manual, journal_service, chart_service):
    """A small year of activity, one voided entry and one draft."""
    chart_service.resolve_or_create_subsidiary_account("C-1", "customer")
    post_manual(date(2024, 1, 2), "572", "100", "3000.00", "Aportación de capital")
    post_manual(date(2024, 2, 10), "600", "572", "800.00", "Compra de mercaderías")
    journal_service.post_entry(
        draft(
            date(2024, 3, 1),
            [
                line("4300001", debit="1210.00"),
                line("700", credit="1000.00"),
                line("4770021", credit="210.00"),
            ],
            "Fra. A-1",
        )
    )
    post_manual(date(2024, 3, 20), "640", "572", "300.00", "Nómina marzo")
    wrong = post_manual(date(2024, 3, 25), "629", "572", "99.00", "Gasto duplicado")
    journal_service.void_entry(wrong.id, "Duplicado")
    journal_service.save_draft(
        draft(date(2024, 4, 1), [line("572", debit="1"), line("700", credit="1")], "Borrador")
    )


class TestLibroDiario:
    def test_lines_in_book_order(self, reporting, books):
        report = reporting.libro_diario(YEAR_START, YEAR_END)

        assert [(l.numero, l.orden) for l in report.lineas] == [
            (1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 2), (3, 3), (4, 1), (4, 2),
        ]
        assert report.lineas[5].cuenta_nombre == "Ventas de mercaderías"
        assert report.totales.total_debe == Decimal("5310.00")
        assert report.totales.cuadrado is True
        assert report.totales.num_asientos == 4
        assert report.metadata.report_type == ReportType.LIBRO_DIARIO

    def test_grand_totals_do_not_depend_on_page(self, reporting, books):
        first = reporting.libro_diario(YEAR_START, YEAR_END, page=1, page_size=4)
        last = reporting.libro_diario(YEAR_START, YEAR_END, page=3, page_size=4)

        assert len(first.lineas) == 4
        assert len(last.lineas) == 1
        assert first.totales == last.totales
        assert first.total_paginas == 3
        assert ("page", "3") in last.metadata.parameters

    def test_include_voided(self, reporting, books):
        report = reporting.libro_diario(YEAR_START, YEAR_END, include_voided=True)
        statuses = {(l.numero, l.estado) for l in report.lineas}
        assert (5, EntryStatus.VOIDED) in statuses
        assert (6, EntryStatus.POSTED) in statuses
        assert report.totales.num_lineas == 13

    def test_filters(self, reporting, books):
        report = reporting.libro_diario(YEAR_START, YEAR_END, account_prefix="43")
        assert [l.cuenta_codigo for l in report.lineas] == ["4300001"]
        report = reporting.libro_diario(YEAR_START, YEAR_END, origin=EntryOrigin.ADJUSTMENT)
        assert report.lineas == ()

    def test_invalid_arguments(self, reporting):
        with pytest.raises(ValidationError):
            reporting.libro_diario(YEAR_END, YEAR_START)
        with pytest.raises(ValidationError):
            reporting.libro_diario(YEAR_START, YEAR_END, page=0)

    def test_generation_is_logged(self, reporting, books, captured_logs):
        reporting.libro_diario(YEAR_START, YEAR_END)
        record = next(r for r in captured_logs() if r["message"] == "libro_diario_generated")
        assert record["total_lines"] == 9
        assert record["is_balanced"] is True


class TestLibroMayor:
    def test_single_account_with_opening_balance(self, reporting, books):
        report = reporting.libro_mayor(
            date_from=date(2024, 2, 1), date_to=YEAR_END, account_code="572"
        )

        (bank,) = report.cuentas
        assert bank.saldo_inicial == Decimal("3000.00")
        assert [m.saldo for m in bank.movimientos] == [Decimal("2200.00"), Decimal("1900.00")]
        assert bank.saldo_final == Decimal("1900.00")
        assert bank.total_haber == Decimal("1100.00")

    def test_credit_account_runs_on_credit_side(self, reporting, books):
        (sales,) = reporting.libro_mayor(
            date_from=YEAR_START, date_to=YEAR_END, account_code="700"
        ).cuentas
        assert sales.saldo_final == Decimal("1000.00")

    def test_group_code_expands_to_postable_accounts(self, reporting, books):
        report = reporting.libro_mayor(date_from=YEAR_START, date_to=YEAR_END, account_code="43")
        assert [a.cuenta_codigo for a in report.cuentas] == ["4300001"]

    def test_code_range(self, reporting, books):
        report = reporting.libro_mayor(
            date_from=YEAR_START, date_to=YEAR_END, code_from="600", code_to="699"
        )
        assert [a.cuenta_codigo for a in report.cuentas] == ["600", "640"]
        assert report.total_debe == Decimal("1100.00")

    def test_voided_entries_left_out(self, reporting, books):
        report = reporting.libro_mayor(date_from=YEAR_START, date_to=YEAR_END, account_code="629")
        assert report.cuentas == ()

    def test_include_empty(self, reporting, books):
        report = reporting.libro_mayor(
            date_from=YEAR_START, date_to=YEAR_END, account_code="629", include_empty=True
        )
        (account,) = report.cuentas
        assert account.movimientos == ()
        assert account.saldo_final == Decimal("0.00")

    def test_unknown_account(self, reporting, books):
        with pytest.raises(AccountNotFoundError):
            reporting.libro_mayor(date_from=YEAR_START, date_to=YEAR_END, account_code="7999")


class TestSumasYSaldos:
    def test_balanced_trial_balance(self, reporting, books):
        report = reporting.sumas_y_saldos(YEAR_START, YEAR_END)

        assert [r.codigo for r in report.cuentas] == [
            "100", "4300001", "4770021", "572", "600", "640", "700",
        ]
        assert report.resumen.cuadrado_sumas is True
        assert report.resumen.cuadrado_saldos is True
        assert report.resumen.total_debe == Decimal("5310.00")

    def test_grouping_level(self, reporting, books):
        report = reporting.sumas_y_saldos(YEAR_START, YEAR_END, grouping_level=1)
        rows = {r.codigo: r for r in report.cuentas}

        assert set(rows) == {"1", "4", "5", "6", "7"}
        assert rows["4"].saldo_deudor == Decimal("1000.00")
        assert rows["6"].nombre == "Compras y gastos"

    def test_all_accounts(self, reporting, books):
        report = reporting.sumas_y_saldos(
            YEAR_START, YEAR_END, only_with_movement=False, code_from="57", code_to="57"
        )
        codes = [r.codigo for r in report.cuentas]
        assert codes == ["570", "5700", "571", "572", "573", "574"]

    def test_unbalanced_entry_surfaces(self, reporting, config_service, journal_service, captured_logs):
        config_service.update_settings(allow_unbalanced_entries=True)
        journal_service.post_entry(
            draft(date(2024, 5, 1), [line("572", debit="100"), line("700", credit="90")])
        )

        report = reporting.sumas_y_saldos(YEAR_START, YEAR_END)

        assert report.resumen.cuadrado_sumas is False
        assert report.resumen.diferencia_sumas == Decimal("10.00")
        record = next(r for r in captured_logs() if r["message"] == "sumas_y_saldos_generated")
        assert record["level"] == "WARNING"

    def test_invalid_grouping_level(self, reporting):
        with pytest.raises(ValidationError):
            reporting.sumas_y_saldos(YEAR_START, YEAR_END, grouping_level=0)


class TestBalanceSituacion:
    def test_balances_with_year_result(self, reporting, books):
        report = reporting.balance_situacion(YEAR_END)

        # 1000 sales - 800 purchases - 300 payroll
        assert report.resultado_ejercicio == Decimal("-100.00")
        assert report.total_activo == Decimal("3110.00")
        assert report.total_pasivo == Decimal("210.00")
        assert report.total_patrimonio_neto == Decimal("2900.00")
        assert report.cuadrado is True
        assert report.diferencia == Decimal("0.00")

    def test_cutoff(self, reporting, books):
        report = reporting.balance_situacion(date(2024, 1, 31))
        assert report.total_activo == Decimal("3000.00")
        assert report.resultado_ejercicio == Decimal("0.00")

    def test_prior_year_results(self, reporting, books):
        report = reporting.balance_situacion(date(2025, 3, 31))
        assert report.resultado_ejercicio == Decimal("0.00")
        assert report.resultados_anteriores == Decimal("-100.00")
        assert report.cuadrado is True

    def test_metadata(self, reporting, books):
        report = reporting.balance_situacion(YEAR_END, detail_level=2)
        assert report.metadata.date_to == YEAR_END
        assert ("detail_level", "2") in report.metadata.parameters
        assert report.metadata.generated_at.startswith("2024-06-30T12:00:00")


class TestCuentaResultados:
    def test_statement(self, reporting, books):
        report = reporting.cuenta_resultados(YEAR_START, YEAR_END)

        assert report.seccion("importe_neto_cifra_negocios").total == Decimal("1000.00")
        assert report.seccion("aprovisionamientos").total == Decimal("800.00")
        assert report.seccion("gastos_personal").total == Decimal("300.00")
        assert report.resultado_explotacion == Decimal("-100.00")
        assert report.resultado_ejercicio == Decimal("-100.00")
        assert report.ejercicio_anterior is None

    def test_compare_with_prior_year(self, reporting, books, post_manual):
        post_manual(date(2023, 2, 28), "572", "700", "50.00", "Venta 2023")

        report = reporting.cuenta_resultados(
            date(2024, 2, 29), YEAR_END, compare_with_prior_year=True
        )

        prior = report.ejercicio_anterior
        assert prior.metadata.date_from == date(2023, 2, 28)
        assert prior.resultado_ejercicio == Decimal("50.00")
        # The February 10 purchase falls before the range
        assert report.resultado_ejercicio == Decimal("700.00")

    def test_unclassified_account_warning(self, reporting, chart_service, post_manual, captured_logs):
        chart_service.create_account("720", "Cuenta fuera de esquema", is_postable=True)
        post_manual(date(2024, 6, 1), "572", "720", "5.00")

        reporting.cuenta_resultados(YEAR_START, YEAR_END)

        record = next(
            r for r in captured_logs() if r["message"] == "income_statement_unclassified_accounts"
        )
        assert record["account_codes"] == ["720"]

    def test_resumida(self, reporting, books):
        summary = reporting.cuenta_resultados_resumida(YEAR_START, YEAR_END)

        assert summary.ventas == Decimal("1000.00")
        assert summary.margen_bruto == Decimal("200.00")
        assert summary.ebitda == Decimal("-100.00")
        assert summary.resultado_neto == Decimal("-100.00")
        assert summary.metadata.report_type == ReportType.CUENTA_RESULTADOS_RESUMIDA


class TestReportingConfig:
    def test_entity_on_metadata(self, session, deterministic_clock):
        service = ReportingService(
            session,
            deterministic_clock,
            ReportingConfig(entity_name="Ejemplo SL", display_precision=0),
        )
        report = service.sumas_y_saldos(YEAR_START, YEAR_END)
        assert report.metadata.entity_name == "Ejemplo SL"

    def test_from_dict(self):
        config = ReportingConfig.from_dict(
            {
                "entity_name": "Ejemplo SL",
                "income_statement": [
                    {"key": "ventas", "kind": "income", "block": "explotacion", "prefixes": [7]},
                    {"key": "gastos", "kind": "expense", "block": "explotacion", "prefixes": [6]},
                ],
                "cost_of_sales_keys": ["gastos"],
            }
        )
        assert config.income_statement.section_for("705").key == "ventas"
        assert config.cost_of_sales_keys == ("gastos",)

    @pytest.mark.parametrize(
        "kwargs", [{"display_precision": -1}, {"diario_page_size": 0}, {"currency": "EURO"}]
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            ReportingConfig(**kwargs)

    def test_render_to_dict(self, reporting, books):
        data = reporting.sumas_y_saldos(YEAR_START, YEAR_END).to_dict()
        assert data["metadata"]["report_type"] == "sumas_y_saldos"
        assert data["resumen"]["total_debe"] == "5310.00"
        assert data["cuentas"][0]["tipo"] == "equity"
