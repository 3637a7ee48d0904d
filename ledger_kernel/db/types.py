"""
Module: ledger_kernel.db.types
Responsibility: Annotated type aliases and rounding helpers for monetary
    columns and values.  Every model and service uses these definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and selectors/.

Invariants enforced:
    - No floats for money.  Amounts are Decimal end to end.
    - round_money() is the only rounding function for presented amounts.
    - BALANCE_TOLERANCE is the single threshold for "balanced" checks.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric, String

# 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Account codes are digit strings (PGC)
AccountCode = Annotated[str, String(20)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# |debit - credit| strictly below this is balanced
BALANCE_TOLERANCE = Decimal("0.01")

ZERO = Decimal("0")


def to_money(value: Decimal | int | str | None) -> Decimal:
    """Coerce an incoming amount to Decimal.

    Floats are rejected; they carry binary rounding error into the ledger.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise TypeError("Monetary amounts must be Decimal, int or str, not float")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary amount for presentation (default 2 places, half up)."""
    quantizer = Decimal(10) ** -decimal_places
    return value.quantize(quantizer, rounding=rounding)
