"""
Pure tests for entry totals and line validation.

NO database, NO I/O.  Property tests use hypothesis over Decimal amounts
with two decimals.
"""

from decimal import Decimal

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ledger_kernel.domain.dtos import LineDraft
from ledger_kernel.domain.totals import (
    compute_entry_totals,
    contra_lines,
    is_balanced,
    validate_lines,
)
from ledger_kernel.exceptions import ValidationError

amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("1000000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)

sides = st.booleans()


@st.composite
def line_sets(draw):
    values = draw(st.lists(st.tuples(amounts, sides), min_size=2, max_size=12))
    return [
        LineDraft("572", debit=amount) if is_debit else LineDraft("700", credit=amount)
        for amount, is_debit in values
    ]


class TestComputeEntryTotals:
    @given(line_sets())
    def test_totals_equal_line_sums(self, lines):
        totals = compute_entry_totals(lines)
        assert totals.total_debit == sum((l.debit for l in lines), Decimal("0"))
        assert totals.total_credit == sum((l.credit for l in lines), Decimal("0"))
        assert totals.difference == totals.total_debit - totals.total_credit
        assert totals.line_count == len(lines)

    @given(line_sets())
    def test_is_balanced_matches_tolerance(self, lines):
        totals = compute_entry_totals(lines)
        assert totals.is_balanced == (abs(totals.difference) < Decimal("0.01"))

    @given(st.lists(amounts, min_size=1, max_size=8))
    def test_mirrored_lines_balance(self, values):
        lines = [LineDraft("572", debit=v) for v in values] + [
            LineDraft("700", credit=sum(values, Decimal("0")))
        ]
        assert compute_entry_totals(lines).is_balanced

    def test_account_codes_in_first_use_order(self):
        lines = [
            LineDraft("430", debit=Decimal("121")),
            LineDraft("700", credit=Decimal("100")),
            LineDraft("477", credit=Decimal("21")),
            LineDraft("700", credit=Decimal("0.00"), debit=Decimal("0")),
        ]
        assert compute_entry_totals(lines).account_codes == ("430", "700", "477")

    def test_tolerance_boundary(self):
        assert is_balanced(Decimal("100.00"), Decimal("100.009"))
        assert not is_balanced(Decimal("100.00"), Decimal("100.01"))


class TestValidateLines:
    def test_needs_two_lines(self):
        with pytest.raises(ValidationError, match="at least 2"):
            validate_lines([LineDraft("572", debit=Decimal("1"))])

    def test_rejects_negative_amount(self):
        with pytest.raises(ValidationError, match="negative"):
            validate_lines([
                LineDraft("572", debit=Decimal("-1")),
                LineDraft("700", credit=Decimal("1")),
            ])

    def test_rejects_both_sides(self):
        with pytest.raises(ValidationError, match="both"):
            validate_lines([
                LineDraft("572", debit=Decimal("1"), credit=Decimal("1")),
                LineDraft("700", credit=Decimal("1")),
            ])

    def test_rejects_empty_line(self):
        with pytest.raises(ValidationError, match="no amount"):
            validate_lines([
                LineDraft("572"),
                LineDraft("700", credit=Decimal("1")),
            ])

    def test_rejects_float_amount(self):
        with pytest.raises(ValidationError, match="Decimal"):
            validate_lines([
                LineDraft("572", debit=1.5),
                LineDraft("700", credit=Decimal("1.5")),
            ])


class TestContraLines:
    @given(line_sets())
    def test_contra_swaps_and_cancels(self, lines):
        contra = contra_lines(lines, "Anulación: ", "Asiento")
        original = compute_entry_totals(lines)
        reversed_totals = compute_entry_totals(contra)
        assert reversed_totals.total_debit == original.total_credit
        assert reversed_totals.total_credit == original.total_debit
        assert all(c.account_code == l.account_code for c, l in zip(contra, lines))

    def test_memo_prefix_with_fallback(self):
        contra = contra_lines(
            [LineDraft("572", debit=Decimal("5"), memo="Cobro"), LineDraft("430", credit=Decimal("5"))],
            "Anulación: ",
            "Asiento 7",
        )
        assert [c.memo for c in contra] == ["Anulación: Cobro", "Anulación: Asiento 7"]
