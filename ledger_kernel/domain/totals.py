"""
Totals -- pure entry arithmetic.

Responsibility:
    Structural line validation and debit/credit totals for a journal entry,
    computed explicitly by the posting pipeline before any write so the
    result is deterministic and testable without a database.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - An entry has at least two lines.
    - Every amount is >= 0 and every line moves exactly one side.
    - total_debit == sum(line.debit), total_credit == sum(line.credit).
    - is_balanced <=> |total_debit - total_credit| < BALANCE_TOLERANCE.

Failure modes:
    - ValidationError for malformed lines.
"""

from collections.abc import Iterable, Sequence
from decimal import Decimal

from ledger_kernel.db.types import BALANCE_TOLERANCE, ZERO
from ledger_kernel.domain.dtos import EntryTotals, LineDraft
from ledger_kernel.exceptions import ValidationError

MIN_LINES = 2


def validate_lines(lines: Sequence[LineDraft]) -> None:
    """Reject structurally invalid lines.

    Raises:
        ValidationError: fewer than two lines, negative amounts, a line with
            both sides or neither side set, or a non-Decimal amount.
    """
    if len(lines) < MIN_LINES:
        raise ValidationError(
            f"A journal entry needs at least {MIN_LINES} lines, got {len(lines)}",
            field="lines",
        )

    for index, line in enumerate(lines, start=1):
        for side in ("debit", "credit"):
            amount = getattr(line, side)
            if not isinstance(amount, Decimal):
                raise ValidationError(
                    f"Line {index}: {side} must be a Decimal, got {type(amount).__name__}",
                    field=f"lines[{index}].{side}",
                )
            if amount < ZERO:
                raise ValidationError(
                    f"Line {index}: {side} cannot be negative ({amount})",
                    field=f"lines[{index}].{side}",
                )
        if line.debit > ZERO and line.credit > ZERO:
            raise ValidationError(
                f"Line {index} on {line.account_code} has both debit and credit",
                field=f"lines[{index}]",
            )
        if line.debit == ZERO and line.credit == ZERO:
            raise ValidationError(
                f"Line {index} on {line.account_code} has no amount",
                field=f"lines[{index}]",
            )


def is_balanced(total_debit: Decimal, total_credit: Decimal) -> bool:
    """Balanced within BALANCE_TOLERANCE."""
    return abs(total_debit - total_credit) < BALANCE_TOLERANCE


def compute_entry_totals(lines: Iterable[LineDraft]) -> EntryTotals:
    """Sum lines into an EntryTotals value."""
    total_debit = ZERO
    total_credit = ZERO
    codes: list[str] = []
    count = 0
    for line in lines:
        total_debit += line.debit
        total_credit += line.credit
        count += 1
        if line.account_code not in codes:
            codes.append(line.account_code)

    return EntryTotals(
        total_debit=total_debit,
        total_credit=total_credit,
        difference=total_debit - total_credit,
        is_balanced=is_balanced(total_debit, total_credit),
        line_count=count,
        account_codes=tuple(codes),
    )


def contra_lines(lines: Iterable[LineDraft], memo_prefix: str, fallback_memo: str) -> tuple[LineDraft, ...]:
    """Lines of a compensating entry: every line with debit/credit swapped."""
    return tuple(
        line.swapped(memo=f"{memo_prefix}{line.memo or fallback_memo}")
        for line in lines
    )
