"""
Tests for LedgerStore and the tenant store factories.
"""

from datetime import date

import pytest
from sqlalchemy import func, select

from ledger_kernel.db.store import LedgerStore, StaticStoreFactory, UrlTemplateStoreFactory
from ledger_kernel.exceptions import UnknownTenantError, ValidationError
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.services.journal_service import JournalLedgerService
from tests.conftest import TEST_ACTOR_ID, draft, line


class TestSessionScope:
    def test_commits_on_success(self, seeded_store, deterministic_clock):
        with seeded_store.session_scope() as session:
            JournalLedgerService(session, deterministic_clock, TEST_ACTOR_ID).post_entry(
                draft(date(2024, 1, 2), [line("572", debit="5"), line("700", credit="5")])
            )

        with seeded_store.snapshot_scope() as session:
            assert session.execute(select(func.count(JournalEntry.id))).scalar_one() == 1

    def test_rolls_back_on_error(self, seeded_store, deterministic_clock):
        with pytest.raises(RuntimeError):
            with seeded_store.session_scope() as session:
                JournalLedgerService(session, deterministic_clock, TEST_ACTOR_ID).post_entry(
                    draft(date(2024, 1, 2), [line("572", debit="5"), line("700", credit="5")])
                )
                raise RuntimeError("boom")

        with seeded_store.snapshot_scope() as session:
            assert session.execute(select(func.count(JournalEntry.id))).scalar_one() == 0

    def test_tenant_key_in_log_context(self, seeded_store, captured_logs):
        with seeded_store.session_scope():
            pass
        record = next(r for r in captured_logs() if r["message"] == "transaction_committed")
        assert record["tenant_key"] == "test"


class TestStaticStoreFactory:
    def test_open_caches_store(self, tmp_path):
        factory = StaticStoreFactory(
            {"acme": f"sqlite:///{tmp_path / 'acme.db'}"}, create_schema=True
        )
        try:
            store = factory.open("acme")
            assert isinstance(store, LedgerStore)
            assert factory.open("acme") is store
            assert store.tenant_key == "acme"
        finally:
            factory.close_all()

    def test_unknown_tenant(self):
        with pytest.raises(UnknownTenantError) as exc_info:
            StaticStoreFactory({}).open("nobody")
        assert exc_info.value.tenant_key == "nobody"


class TestUrlTemplateStoreFactory:
    def test_one_database_per_tenant(self, tmp_path):
        factory = UrlTemplateStoreFactory(
            f"sqlite:///{tmp_path}/ledger_{{tenant}}.db", create_schema=True
        )
        try:
            first = factory.open("empresa_a")
            second = factory.open("empresa_b")
            assert first is not second
            assert (tmp_path / "ledger_empresa_a.db").exists()
            assert (tmp_path / "ledger_empresa_b.db").exists()
        finally:
            factory.close_all()

    def test_template_needs_placeholder(self):
        with pytest.raises(ValidationError):
            UrlTemplateStoreFactory("sqlite:///ledger.db")

    @pytest.mark.parametrize("key", ["", "../etc", "a b", "x" * 65, "t;drop"])
    def test_rejects_unsafe_keys(self, key):
        factory = UrlTemplateStoreFactory("sqlite:///ledger_{tenant}.db")
        with pytest.raises(ValidationError):
            factory.open(key)
