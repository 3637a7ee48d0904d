"""
End-to-end scenarios on a ledger holding only the accounts they create:
post an invoice, read the trial balance, void the invoice.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.classification import AccountType, Nature
from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import EntryFilter, JournalSelector
from ledger_kernel.services.chart_service import ChartOfAccountsService
from ledger_kernel.services.journal_service import JournalLedgerService
from ledger_modules.reporting import ReportingService
from tests.conftest import TEST_ACTOR_ID, draft, line

PERIOD = (date(2024, 1, 1), date(2024, 1, 31))


@pytest.fixture
def minimal_chart(bare_session, deterministic_clock):
    chart = ChartOfAccountsService(bare_session, deterministic_clock, TEST_ACTOR_ID)
    chart.create_account("430", "Clientes", is_postable=True)
    chart.create_account("700", "Ventas de mercaderías", is_postable=True)
    chart.create_account(
        "477",
        "Hacienda Pública, IVA repercutido",
        is_postable=True,
        account_type=AccountType.LIABILITY,
        nature=Nature.CREDIT,
    )
    return bare_session


@pytest.fixture
def ledger_service(minimal_chart, deterministic_clock):
    return JournalLedgerService(minimal_chart, deterministic_clock, TEST_ACTOR_ID)


@pytest.fixture
def invoice_entry(ledger_service):
    return ledger_service.post_entry(
        draft(
            date(2024, 1, 15),
            [
                line("430", debit="121.00"),
                line("700", credit="100.00"),
                line("477", credit="21.00"),
            ],
            "Fra. 2024-001",
            origin=EntryOrigin.SALES_INVOICE,
            origin_id="INV-2024-001",
        )
    )


class TestInvoiceScenario:
    def test_accounts_have_expected_nature(self, minimal_chart):
        accounts = AccountSelector(minimal_chart)
        assert accounts.get_by_code("430").nature == Nature.DEBIT
        assert accounts.get_by_code("700").nature == Nature.CREDIT
        assert accounts.get_by_code("477").nature == Nature.CREDIT

    def test_invoice_posts_one_balanced_entry(self, invoice_entry, minimal_chart):
        assert invoice_entry.is_balanced is True
        assert [(l.account_code, l.debit, l.credit) for l in invoice_entry.lines] == [
            ("430", Decimal("121.00"), Decimal("0")),
            ("700", Decimal("0"), Decimal("100.00")),
            ("477", Decimal("0"), Decimal("21.00")),
        ]
        assert JournalSelector(minimal_chart).list_entries().total == 1

    def test_trial_balance(self, invoice_entry, minimal_chart, deterministic_clock):
        report = ReportingService(minimal_chart, deterministic_clock).sumas_y_saldos(*PERIOD)
        rows = {r.codigo: r for r in report.cuentas}

        assert rows["430"].suma_debe == Decimal("121.00")
        assert rows["430"].saldo_deudor == Decimal("121.00")
        assert rows["430"].saldo_acreedor == Decimal("0")
        assert rows["700"].suma_haber == Decimal("100.00")
        assert rows["700"].saldo_acreedor == Decimal("100.00")
        assert report.resumen.cuadrado_sumas is True

    def test_void_restores_balance(self, ledger_service, minimal_chart):
        accounts = AccountSelector(minimal_chart)
        before = accounts.get_by_code("430").net_balance
        original = ledger_service.post_entry(
            draft(
                date(2024, 1, 15),
                [line("430", debit="121.00"), line("700", credit="100.00"), line("477", credit="21.00")],
                "Fra. 2024-001",
            )
        )

        contra = ledger_service.void_entry(original.id, "Factura emitida por error")

        assert accounts.get_by_code("430").net_balance == before
        assert original.status == EntryStatus.VOIDED
        assert contra.origin == EntryOrigin.ADJUSTMENT
        assert [(l.account_code, l.debit, l.credit) for l in contra.lines] == [
            ("430", Decimal("0"), Decimal("121.00")),
            ("700", Decimal("100.00"), Decimal("0")),
            ("477", Decimal("21.00"), Decimal("0")),
        ]
        adjustments = JournalSelector(minimal_chart).list_entries(
            EntryFilter(origin=EntryOrigin.ADJUSTMENT)
        )
        assert [e.id for e in adjustments.items] == [contra.id]

    def test_trial_balance_after_void_is_empty(
        self, invoice_entry, ledger_service, minimal_chart, deterministic_clock
    ):
        ledger_service.void_entry(invoice_entry.id, "Error")
        report = ReportingService(minimal_chart, deterministic_clock).sumas_y_saldos(*PERIOD)
        assert report.cuentas == ()
        assert report.resumen.cuadrado_sumas is True
