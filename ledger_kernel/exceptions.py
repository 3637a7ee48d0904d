"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerError:

    LedgerError (base)
    |
    +-- ValidationError
    |   +-- DuplicateOriginError
    |   +-- PartyNotFoundError
    |
    +-- AccountError
    |   +-- DuplicateAccountError
    |   +-- AccountNotFoundError
    |   +-- NonPostableAccountError
    |   +-- SystemAccountError
    |   +-- AccountHasMovementsError
    |
    +-- PostingError
    |   +-- UnbalancedEntryError
    |   +-- EntryNotFoundError
    |   +-- AlreadyVoidedError
    |   +-- EntryNotDraftError
    |
    +-- PeriodError
    |   +-- ClosedPeriodError
    |
    +-- AutoPostingError
    |   +-- MissingDefaultAccountError
    |   +-- UnbalancedGeneratedEntryError
    |   +-- AutomaticPostingDisabledError
    |
    +-- ConcurrencyConflictError
    |
    +-- TenantError
        +-- UnknownTenantError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed input (codes, lines, amounts)
                | DUPLICATE_ORIGIN            | Source document already has an entry
                | PARTY_NOT_FOUND             | Party directory has no such party
----------------|-----------------------------|-----------------------------------------
Account         | DUPLICATE_ACCOUNT           | Account code already exists
                | ACCOUNT_NOT_FOUND           | Code or ID does not exist
                | NON_POSTABLE_ACCOUNT        | Group/inactive account used on a line
                | SYSTEM_ACCOUNT_IMMUTABLE    | Editing a seeded system account
                | ACCOUNT_HAS_MOVEMENTS       | Deactivating an account with movements
----------------|-----------------------------|-----------------------------------------
Posting         | UNBALANCED_ENTRY            | Debits != Credits (flag off)
                | ENTRY_NOT_FOUND             | Entry ID does not exist
                | ALREADY_VOIDED              | Entry voided or already compensated
                | ENTRY_NOT_DRAFT             | Posting a draft that is not a draft
----------------|-----------------------------|-----------------------------------------
Period          | CLOSED_PERIOD               | Year or month locked, enforcement on
----------------|-----------------------------|-----------------------------------------
Auto posting    | MISSING_DEFAULT_ACCOUNT     | No account resolves for a posting role
                | UNBALANCED_GENERATED_ENTRY  | Generator arithmetic is inconsistent
                | AUTO_POSTING_DISABLED       | Feature flag off (skip, not an error)
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENCY_CONFLICT        | Bounded retries exhausted (retryable)
----------------|-----------------------------|-----------------------------------------
Tenant          | UNKNOWN_TENANT              | No ledger store for the tenant key

===============================================================================
HANDLING PATTERNS
===============================================================================

1. CATCH SPECIFIC EXCEPTIONS, USE STRUCTURED DATA:

    try:
        ledger.post_entry(draft)
    except UnbalancedEntryError as e:
        return {
            "error": e.code,
            "total_debit": e.total_debit,
            "total_credit": e.total_credit,
            "difference": e.difference,
        }
    except ClosedPeriodError as e:
        notify_user(f"Period {e.month}/{e.fiscal_year} is closed")

2. RETRYABLE ERRORS:

    except ConcurrencyConflictError as e:
        if e.retryable:
            schedule_retry()

3. AUTO POSTING SKIP SIGNAL:

    AutomaticPostingDisabledError never reaches callers of the
    generators; they receive None instead.

===============================================================================
"""

from datetime import date
from decimal import Decimal


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "LEDGER_ERROR"
    retryable: bool = False


# Validation exceptions


class ValidationError(LedgerError):
    """Input does not satisfy a structural rule."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class DuplicateOriginError(ValidationError):
    """A journal entry already exists for this source document."""

    code: str = "DUPLICATE_ORIGIN"

    def __init__(self, origin: str, origin_id: str, entry_id: str):
        self.origin = origin
        self.origin_id = origin_id
        self.entry_id = entry_id
        super().__init__(
            f"Source document {origin}/{origin_id} already posted as entry {entry_id}",
            field="origin_id",
        )


class PartyNotFoundError(ValidationError):
    """The party directory does not know this party."""

    code: str = "PARTY_NOT_FOUND"

    def __init__(self, party_id: str, party_type: str):
        self.party_id = party_id
        self.party_type = party_type
        super().__init__(
            f"Party not found: {party_type} {party_id}",
            field="party_id",
        )


# Account exceptions


class AccountError(LedgerError):
    """Base exception for chart-of-accounts errors."""

    code: str = "ACCOUNT_ERROR"


class DuplicateAccountError(AccountError):
    """An account with this code already exists."""

    code: str = "DUPLICATE_ACCOUNT"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class AccountNotFoundError(AccountError):
    """Account with given code or ID was not found."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class NonPostableAccountError(AccountError):
    """Account does not accept movements (group account or inactive)."""

    code: str = "NON_POSTABLE_ACCOUNT"

    def __init__(self, account_code: str, reason: str = "not a movement account"):
        self.account_code = account_code
        self.reason = reason
        super().__init__(f"Account {account_code} does not accept postings: {reason}")


class SystemAccountError(AccountError):
    """System-defined accounts cannot be edited or deactivated."""

    code: str = "SYSTEM_ACCOUNT_IMMUTABLE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} is system-defined and immutable")


class AccountHasMovementsError(AccountError):
    """Account cannot be deactivated or made non-postable while it has movements."""

    code: str = "ACCOUNT_HAS_MOVEMENTS"

    def __init__(self, account_code: str, movement_count: int, action: str = "deactivated"):
        self.account_code = account_code
        self.movement_count = movement_count
        self.action = action
        super().__init__(
            f"Account {account_code} has {movement_count} movement(s) and "
            f"cannot be {action}"
        )


# Posting exceptions


class PostingError(LedgerError):
    """Base exception for journal posting errors."""

    code: str = "POSTING_ERROR"


class UnbalancedEntryError(PostingError):
    """Journal entry debits do not equal credits."""

    code: str = "UNBALANCED_ENTRY"

    def __init__(self, total_debit: Decimal, total_credit: Decimal):
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = total_debit - total_credit
        super().__init__(
            f"Unbalanced entry: debit={total_debit}, credit={total_credit}, "
            f"difference={self.difference}"
        )


class EntryNotFoundError(PostingError):
    """Journal entry with given ID was not found."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


class AlreadyVoidedError(PostingError):
    """Entry is already voided or already has a compensating entry."""

    code: str = "ALREADY_VOIDED"

    def __init__(self, entry_id: str, entry_number: int | None):
        self.entry_id = entry_id
        self.entry_number = entry_number
        super().__init__(f"Journal entry {entry_number} ({entry_id}) is already voided")


class EntryNotDraftError(PostingError):
    """Only draft entries can be posted from the draft store."""

    code: str = "ENTRY_NOT_DRAFT"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(f"Journal entry {entry_id} is {status}, not draft")


# Period exceptions


class PeriodError(LedgerError):
    """Base exception for fiscal period errors."""

    code: str = "PERIOD_ERROR"


class ClosedPeriodError(PeriodError):
    """Attempted to post into a locked fiscal year or month."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, fiscal_year: int, month: int, entry_date: date | None = None):
        self.fiscal_year = fiscal_year
        self.month = month
        self.entry_date = entry_date
        super().__init__(f"Period {month:02d}/{fiscal_year} is closed")


# Auto posting exceptions


class AutoPostingError(LedgerError):
    """Base exception for automatic posting errors."""

    code: str = "AUTO_POSTING_ERROR"


class MissingDefaultAccountError(AutoPostingError):
    """No account resolves for a posting role."""

    code: str = "MISSING_DEFAULT_ACCOUNT"

    def __init__(self, role: str, account_code: str | None = None):
        self.role = role
        self.account_code = account_code
        detail = f" (configured code {account_code})" if account_code else ""
        super().__init__(f"No account available for role '{role}'{detail}")


class UnbalancedGeneratedEntryError(AutoPostingError):
    """
    A generator produced unbalanced lines.

    This is a configuration or arithmetic bug in the source payload and is
    never retried.
    """

    code: str = "UNBALANCED_GENERATED_ENTRY"

    def __init__(
        self,
        origin: str,
        origin_id: str,
        total_debit: Decimal,
        total_credit: Decimal,
    ):
        self.origin = origin
        self.origin_id = origin_id
        self.total_debit = total_debit
        self.total_credit = total_credit
        self.difference = total_debit - total_credit
        super().__init__(
            f"Generated entry for {origin}/{origin_id} is unbalanced: "
            f"debit={total_debit}, credit={total_credit}"
        )


class AutomaticPostingDisabledError(AutoPostingError):
    """Automatic posting is switched off for this ledger (skip signal)."""

    code: str = "AUTO_POSTING_DISABLED"

    def __init__(self, origin: str, origin_id: str):
        self.origin = origin
        self.origin_id = origin_id
        super().__init__(f"Automatic posting disabled, skipped {origin}/{origin_id}")


# Concurrency exceptions


class ConcurrencyConflictError(LedgerError):
    """Concurrent writers kept colliding after bounded retries."""

    code: str = "CONCURRENCY_CONFLICT"
    retryable: bool = True

    def __init__(self, resource: str, attempts: int):
        self.resource = resource
        self.attempts = attempts
        super().__init__(
            f"Concurrency conflict on {resource} after {attempts} attempt(s)"
        )


# Tenant exceptions


class TenantError(LedgerError):
    """Base exception for tenant store resolution."""

    code: str = "TENANT_ERROR"


class UnknownTenantError(TenantError):
    """No ledger store is registered for the tenant key."""

    code: str = "UNKNOWN_TENANT"

    def __init__(self, tenant_key: str):
        self.tenant_key = tenant_key
        super().__init__(f"Unknown tenant: {tenant_key}")
