"""
Classification -- PGC account-code rules.

Responsibility:
    Pure functions deriving everything the chart of accounts knows from an
    account code alone: hierarchy level, parent code, account type and
    nature (by PGC group prefix), the default postable flag, and the
    zero-padded codes of per-party subsidiary accounts.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Used by
    ChartOfAccountsService when creating accounts and by the report
    builders on aggregated (prefix) codes.

Invariants enforced:
    - level(code) = len(code) for codes up to 4 digits; each further 2
      digits add one level.
    - Every code maps to exactly one (AccountType, Nature) pair.
    - Subsidiary codes are exactly ``length`` digits and start with the
      configured prefix.

Failure modes:
    - ValueError for empty or non-digit codes.
    - ValueError when a subsidiary sequence no longer fits in the
      configured length.
"""

from dataclasses import dataclass
from enum import Enum


class AccountType(str, Enum):
    """Financial statement family of an account."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class Nature(str, Enum):
    """Side that increases the account's natural balance."""

    DEBIT = "debit"
    CREDIT = "credit"


class PartyType(str, Enum):
    """Kind of third party a subsidiary account tracks."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    BANK_ACCOUNT = "bank_account"


@dataclass(frozen=True)
class Classification:
    """Type and nature derived from an account code."""

    account_type: AccountType
    nature: Nature


POSTABLE_FROM_LEVEL = 3

_EQUITY = Classification(AccountType.EQUITY, Nature.CREDIT)
_ASSET = Classification(AccountType.ASSET, Nature.DEBIT)
_LIABILITY = Classification(AccountType.LIABILITY, Nature.CREDIT)
_EXPENSE = Classification(AccountType.EXPENSE, Nature.DEBIT)
_INCOME = Classification(AccountType.INCOME, Nature.CREDIT)

# Group 4 splits by sub-prefix; first match wins.
_GROUP_4_RULES: tuple[tuple[str, Classification], ...] = (
    ("40", _LIABILITY),  # suppliers
    ("41", _LIABILITY),  # sundry creditors
    ("43", _ASSET),  # customers
    ("44", _ASSET),  # sundry debtors
    ("475", _LIABILITY),  # tax authority, creditor
    ("476", _LIABILITY),  # social security, creditor
    ("477", _LIABILITY),  # output VAT
)


def validate_code(code: str) -> str:
    """Return the code if it is a non-empty digit string, else raise ValueError."""
    if not code or not code.isdigit():
        raise ValueError(f"Account code must be a non-empty digit string: {code!r}")
    return code


def account_level(code: str) -> int:
    """Hierarchy level of an account code."""
    validate_code(code)
    if len(code) <= 4:
        return len(code)
    return 4 + (len(code) - 4) // 2


def parent_code(code: str) -> str | None:
    """Code of the parent account (code minus its last digit), if any."""
    validate_code(code)
    return code[:-1] if len(code) > 1 else None


def default_postable(code: str) -> bool:
    """Accounts at level 3 and below accept movements by default."""
    return account_level(code) >= POSTABLE_FROM_LEVEL


def classify(code: str) -> Classification:
    """
    Classify an account code by PGC group prefix.

    Group 1 -> equity/credit; groups 2, 3 and 5 -> asset/debit; group 4 by
    sub-prefix (suppliers and creditors, tax and social-security creditors,
    output VAT -> liability/credit; everything else asset/debit); group 6
    -> expense/debit; group 7 -> income/credit.  Any other group falls back
    to asset/debit.
    """
    validate_code(code)
    group = code[0]

    if group == "1":
        return _EQUITY
    if group in ("2", "3", "5"):
        return _ASSET
    if group == "4":
        for prefix, result in _GROUP_4_RULES:
            if code.startswith(prefix):
                return result
        return _ASSET
    if group == "6":
        return _EXPENSE
    if group == "7":
        return _INCOME
    return _ASSET


def natural_balance(nature: Nature, debit, credit):
    """Net balance on the account's natural side."""
    if nature == Nature.DEBIT:
        return debit - credit
    return credit - debit


def subsidiary_code(prefix: str, length: int, sequence: int) -> str:
    """
    Build the code of the ``sequence``-th subsidiary account under prefix.

    >>> subsidiary_code("430", 7, 1)
    '4300001'
    """
    validate_code(prefix)
    width = length - len(prefix)
    if width <= 0:
        raise ValueError(
            f"Subsidiary length {length} leaves no room after prefix {prefix}"
        )
    if sequence < 1 or len(str(sequence)) > width:
        raise ValueError(
            f"Subsidiary sequence {sequence} does not fit {width} digit(s) "
            f"after prefix {prefix}"
        )
    return f"{prefix}{sequence:0{width}d}"


def subsidiary_sequence(prefix: str, code: str) -> int:
    """Inverse of subsidiary_code: the sequence number encoded in code."""
    if not code.startswith(prefix):
        raise ValueError(f"Code {code} does not start with prefix {prefix}")
    return int(code[len(prefix):])
