"""
Tests for LedgerSelector: effective-entry filtering, point-in-time balances,
per-account aggregates and line listings.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import EntryOrigin, EntryStatus
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from tests.conftest import draft, line


@pytest.fixture
def ledger(session):
    return LedgerSelector(session)


@pytest.fixture
def activity(post_manual, journal_service):
    """Three effective entries, one voided pair and one draft."""
    post_manual(date(2024, 1, 10), "572", "100", "3000.00", "Aportación")
    post_manual(date(2024, 2, 10), "600", "572", "800.00", "Compra")
    post_manual(date(2024, 3, 10), "430", "700", "1200.00", "Venta")
    voided = post_manual(date(2024, 3, 15), "430", "700", "99.00", "Venta errónea")
    journal_service.void_entry(voided.id, "Error")
    journal_service.save_draft(
        draft(date(2024, 3, 20), [line("572", debit="5"), line("700", credit="5")], "Borrador")
    )


class TestBalanceAsOf:
    def test_cutoff_is_inclusive(self, ledger, activity):
        assert ledger.balance_as_of("572", date(2024, 1, 9)).net_balance == 0
        assert ledger.balance_as_of("572", date(2024, 1, 10)).net_balance == Decimal("3000.00")
        assert ledger.balance_as_of("572", date(2024, 2, 10)).net_balance == Decimal("2200.00")

    def test_natural_side(self, ledger, activity):
        result = ledger.balance_as_of("700", date(2024, 12, 31))
        assert result.credit == Decimal("1200.00")
        assert result.net_balance == Decimal("1200.00")

    def test_void_pair_and_drafts_excluded(self, ledger, activity):
        assert ledger.balance_as_of("430", date(2024, 12, 31)).net_balance == Decimal("1200.00")

    def test_fiscal_year_restriction(self, ledger, activity, post_manual):
        post_manual(date(2025, 1, 5), "572", "700", "10.00", "Venta 2025")
        assert ledger.balance_as_of("700", date(2025, 12, 31)).net_balance == Decimal("1210.00")
        assert ledger.balance_as_of("700", date(2025, 12, 31), fiscal_year=2025).net_balance == Decimal("10.00")

    def test_unknown_code(self, ledger):
        with pytest.raises(AccountNotFoundError):
            ledger.balance_as_of("7999", date(2024, 12, 31))


class TestAccountTotals:
    def test_only_accounts_with_lines(self, ledger, activity):
        rows = ledger.account_totals(date(2024, 1, 1), date(2024, 12, 31))
        assert [r.account_code for r in rows] == ["100", "430", "572", "600", "700"]
        by_code = {r.account_code: r for r in rows}
        assert by_code["572"].debit == Decimal("3000.00")
        assert by_code["572"].credit == Decimal("800.00")
        assert by_code["572"].line_count == 2

    def test_debits_equal_credits(self, ledger, activity):
        rows = ledger.account_totals(date(2024, 1, 1), date(2024, 12, 31))
        assert sum(r.debit for r in rows) == sum(r.credit for r in rows)

    def test_before_is_exclusive(self, ledger, activity):
        rows = ledger.account_totals(before=date(2024, 2, 10))
        assert {r.account_code for r in rows} == {"100", "572"}

    def test_code_range_includes_extensions_of_upper_bound(
        self, ledger, activity, post_manual, chart_service
    ):
        chart_service.create_account("4300001", "Cliente Uno SL")
        post_manual(date(2024, 4, 1), "4300001", "700", "10.00")

        rows = ledger.account_totals(code_from="400", code_to="430")
        assert [r.account_code for r in rows] == ["430", "4300001"]

    def test_code_prefix(self, ledger, activity):
        rows = ledger.account_totals(code_prefix="6")
        assert [r.account_code for r in rows] == ["600"]


class TestLineListings:
    def test_chronological_order(self, ledger, activity):
        rows = ledger.journal_lines(date(2024, 1, 1), date(2024, 12, 31))
        assert [(r.number, r.line_no) for r in rows] == [(1, 1), (1, 2), (2, 1), (2, 2), (3, 1), (3, 2)]

    def test_include_voided_brings_back_both_halves(self, ledger, activity):
        rows = ledger.journal_lines(date(2024, 1, 1), date(2024, 12, 31), include_voided=True)
        statuses = {r.number: r.status for r in rows}
        assert statuses[4] == EntryStatus.VOIDED
        assert statuses[5] == EntryStatus.POSTED
        assert len(rows) == 10

    def test_filters(self, ledger, activity):
        assert len(ledger.journal_lines(date(2024, 1, 1), date(2024, 12, 31), account_prefix="57")) == 2
        assert ledger.journal_lines(
            date(2024, 1, 1), date(2024, 12, 31), origin=EntryOrigin.SALES_INVOICE
        ) == []

    def test_pagination(self, ledger, activity):
        page = ledger.journal_lines(date(2024, 1, 1), date(2024, 12, 31), offset=2, limit=2)
        assert [(r.number, r.line_no) for r in page] == [(2, 1), (2, 2)]

    def test_totals_ignore_pagination(self, ledger, activity):
        totals = ledger.journal_line_totals(date(2024, 1, 1), date(2024, 12, 31))
        assert totals.total_debit == Decimal("5000.00")
        assert totals.total_credit == Decimal("5000.00")
        assert totals.entry_count == 3
        assert totals.line_count == 6

    def test_account_movements(self, ledger, activity):
        rows = ledger.account_movements("572", date(2024, 2, 1), date(2024, 12, 31))
        assert [(r.description, r.credit) for r in rows] == [("Compra", Decimal("800.00"))]
