"""
Concurrency tests with real threads, one session per thread.

Every worker runs in its own LedgerStore.session_scope(); a Barrier
releases them together.  On SQLite the writers serialize on BEGIN
IMMEDIATE; with LEDGER_DATABASE_URL pointing at PostgreSQL they race on
row locks and unique constraints.

Skip with: pytest -m "not slow_locks"
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from threading import Barrier

import pytest
from sqlalchemy import func, select

from ledger_kernel.domain.classification import PartyType
from ledger_kernel.domain.settings import PartyDisplayInfo
from ledger_kernel.models.account import Account
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.services.chart_service import ChartOfAccountsService
from ledger_kernel.services.journal_service import JournalLedgerService
from ledger_kernel.services.sequence_service import SequenceService
from tests.conftest import TEST_ACTOR_ID, draft, line

pytestmark = pytest.mark.slow_locks

WORKERS = 8


def run_concurrently(worker, count: int = WORKERS) -> list:
    """Run worker(index) in count threads released together; re-raise the first error."""
    barrier = Barrier(count)

    def wrapped(index):
        barrier.wait(timeout=30)
        return worker(index)

    with ThreadPoolExecutor(max_workers=count) as pool:
        futures = [pool.submit(wrapped, i) for i in range(count)]
        return [future.result(timeout=120) for future in futures]


class TestSubsidiaryAccountRace:
    def test_same_new_customer_creates_one_account(self, seeded_store, deterministic_clock):
        def worker(_):
            with seeded_store.session_scope() as session:
                account = ChartOfAccountsService(
                    session, deterministic_clock, TEST_ACTOR_ID
                ).resolve_or_create_subsidiary_account(
                    "C-NEW",
                    PartyType.CUSTOMER,
                    display_info=PartyDisplayInfo("Cliente Nuevo SL", "B44444444"),
                )
                return account.code

        codes = run_concurrently(worker)

        assert set(codes) == {"4300001"}
        with seeded_store.session_scope() as session:
            count = session.execute(
                select(func.count(Account.id)).where(Account.party_id == "C-NEW")
            ).scalar_one()
        assert count == 1

    def test_different_customers_get_distinct_codes(self, seeded_store, deterministic_clock):
        def worker(index):
            with seeded_store.session_scope() as session:
                return ChartOfAccountsService(
                    session, deterministic_clock, TEST_ACTOR_ID
                ).resolve_or_create_subsidiary_account(
                    f"C-{index}",
                    PartyType.CUSTOMER,
                    display_info=PartyDisplayInfo(f"Cliente {index}"),
                ).code

        codes = run_concurrently(worker)

        assert sorted(codes) == [f"430{n:04d}" for n in range(1, WORKERS + 1)]


class TestNumberingAndBalances:
    def _post(self, seeded_store, clock, amount="10.00"):
        with seeded_store.session_scope() as session:
            entry = JournalLedgerService(session, clock, TEST_ACTOR_ID).post_entry(
                draft(date(2024, 5, 1), [line("572", debit=amount), line("700", credit=amount)])
            )
            return entry.number

    def test_concurrent_posts_get_unique_gapless_numbers(self, seeded_store, deterministic_clock):
        numbers = run_concurrently(lambda _: self._post(seeded_store, deterministic_clock))

        assert sorted(numbers) == list(range(1, WORKERS + 1))
        with seeded_store.session_scope() as session:
            assert SequenceService(session).current_value("journal_entry:2024") == WORKERS

    def test_concurrent_posts_on_one_account_lose_no_update(self, seeded_store, deterministic_clock):
        run_concurrently(lambda _: self._post(seeded_store, deterministic_clock))

        with seeded_store.session_scope() as session:
            bank = AccountSelector(session).get_by_code("572")
            assert bank.net_balance == Decimal("10.00") * WORKERS
            assert bank.movement_count == WORKERS
