"""
AccountBalanceIndex -- always-current running balances per account.

Responsibility:
    Applies one debit/credit delta per journal line to the account's
    running columns (debit_sum, credit_sum, net_balance, movement_count,
    last_movement_at).

Architecture position:
    Kernel > Services.  Called only by JournalLedgerService, once per line
    of a posted entry (post and void).  No other code path writes the
    balance columns.

Invariants enforced:
    - Increments are storage-native: a single
      ``UPDATE accounts SET debit_sum = debit_sum + :d, ...`` statement,
      never a read-modify-write in Python.  Concurrent postings on the same
      account serialize on the row lock (PostgreSQL) or the database write
      lock (SQLite BEGIN IMMEDIATE).
    - net_balance is recomputed from the incremented sums in the same
      statement, per the account's nature, so it is never stale.

Failure modes:
    - AccountNotFoundError if the account row does not exist.
    - ValidationError for negative or non-Decimal deltas.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, update
from sqlalchemy.orm.util import identity_key

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.classification import Nature
from ledger_kernel.exceptions import AccountNotFoundError, ValidationError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.base import BaseService

logger = get_logger("services.balance")


class AccountBalanceIndex(BaseService):
    """
    Atomic per-account balance maintenance.

    Contract:
        ``apply_delta`` adds the given amounts to the account's sums and
        counts one movement.  The change becomes visible to other sessions
        when the caller's transaction commits.

    Non-goals:
        - Point-in-time balances; see LedgerSelector.balance_as_of.
    """

    def apply_delta(
        self,
        account_id: UUID,
        debit_delta: Decimal,
        credit_delta: Decimal,
    ) -> None:
        """
        Add one line's amounts to an account.

        Args:
            account_id: Account to update.
            debit_delta: Debit amount of the line (>= 0).
            credit_delta: Credit amount of the line (>= 0).

        Raises:
            AccountNotFoundError: No account with this id.
        """
        for side, amount in (("debit_delta", debit_delta), ("credit_delta", credit_delta)):
            if not isinstance(amount, Decimal) or amount < ZERO:
                raise ValidationError(
                    f"{side} must be a non-negative Decimal, got {amount!r}",
                    field=side,
                )

        new_debit = Account.debit_sum + debit_delta
        new_credit = Account.credit_sum + credit_delta

        result = self.session.execute(
            update(Account)
            .where(Account.id == account_id)
            .values(
                debit_sum=new_debit,
                credit_sum=new_credit,
                net_balance=case(
                    (Account.nature == Nature.DEBIT.value, new_debit - new_credit),
                    else_=new_credit - new_debit,
                ),
                movement_count=Account.movement_count + 1,
                last_movement_at=self.clock.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AccountNotFoundError(str(account_id))

        # A loaded Account now holds stale sums
        loaded = self.session.identity_map.get(identity_key(Account, account_id))
        if loaded is not None:
            self.session.expire(loaded)

        logger.debug(
            "balance_delta_applied",
            extra={
                "account_id": str(account_id),
                "debit_delta": debit_delta,
                "credit_delta": credit_delta,
            },
        )
