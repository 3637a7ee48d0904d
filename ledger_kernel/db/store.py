"""
Module: ledger_kernel.db.store
Responsibility: Per-tenant ledger stores.  A LedgerStore bundles the engine
    and session factories of one tenant's ledger database; a
    LedgerStoreFactory resolves a tenant key to its store.  Tenant
    resolution lives here, outside every posting and report algorithm,
    which only ever receive a Session.
Architecture position: Kernel > DB.  May import from db/engine.py and
    exceptions.py.

Invariants enforced:
    - One engine per tenant, created once and cached (thread-safe).
    - session_scope() is the only commit point: services flush, the scope
      commits on success and rolls back on any exception.
    - snapshot_scope() gives report code one consistent snapshot
      (REPEATABLE READ on PostgreSQL; a single transaction on SQLite, which
      is serializable) and never commits.

Failure modes:
    - UnknownTenantError when a static factory has no entry for the key.
    - ValidationError when a tenant key contains characters that are not
      safe to substitute into a database URL.
"""

import re
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Generator, Mapping

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import build_engine, create_tables, is_postgres
from ledger_kernel.exceptions import UnknownTenantError, ValidationError
from ledger_kernel.logging_config import LogContext, get_logger

logger = get_logger("db.store")

_TENANT_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


class LedgerStore:
    """
    One tenant's ledger database.

    Contract:
        Owns the engine for a tenant and hands out sessions.  Callers run
        services inside session_scope() and reports inside
        snapshot_scope().

    Non-goals:
        - Does not know about accounts, entries or reports.
    """

    def __init__(self, tenant_key: str, engine: Engine):
        self.tenant_key = tenant_key
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        if is_postgres(engine):
            snapshot_bind = engine.execution_options(isolation_level="REPEATABLE READ")
        else:
            snapshot_bind = engine
        self._snapshot_factory = sessionmaker(bind=snapshot_bind, expire_on_commit=False)

    def __repr__(self) -> str:
        return f"<LedgerStore {self.tenant_key} ({self.engine.dialect.name})>"

    @property
    def session_factory(self) -> sessionmaker[Session]:
        """Session factory, e.g. for worker threads that each need a session."""
        return self._session_factory

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Transactional scope around a series of write operations.

        Postconditions: On normal exit the session is committed and closed.
            On exception it is rolled back and closed, and the exception is
            re-raised.
        """
        session = self._session_factory()
        with LogContext.bind(tenant_key=self.tenant_key):
            logger.debug("transaction_started")
            try:
                yield session
                session.commit()
                logger.debug("transaction_committed")
            except Exception:
                session.rollback()
                logger.warning("transaction_rolled_back", exc_info=True)
                raise
            finally:
                session.close()

    @contextmanager
    def snapshot_scope(self) -> Generator[Session, None, None]:
        """Read-only scope over one consistent snapshot; always rolled back."""
        session = self._snapshot_factory()
        with LogContext.bind(tenant_key=self.tenant_key):
            try:
                yield session
            finally:
                session.rollback()
                session.close()

    def create_schema(self) -> None:
        """Create the ledger tables in this tenant's database."""
        create_tables(self.engine)

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()


class LedgerStoreFactory(ABC):
    """
    Resolves tenant keys to ledger stores: ``open(tenant_key) -> LedgerStore``.

    Contract:
        open() returns the same LedgerStore for the same key for the life of
        the factory.  Subclasses decide which database URL a key maps to.

    Guarantees:
        - Thread-safe: concurrent open() calls for a new key build exactly
          one engine.
        - When create_schema is set, tables are created the first time a
          tenant is opened.
    """

    def __init__(self, *, create_schema: bool = False, **engine_options):
        self._create_schema = create_schema
        self._engine_options = engine_options
        self._stores: dict[str, LedgerStore] = {}
        self._lock = threading.Lock()

    @abstractmethod
    def database_url(self, tenant_key: str) -> str:
        """Return the database URL for a tenant, or raise UnknownTenantError."""

    def open(self, tenant_key: str) -> LedgerStore:
        """Return the ledger store for tenant_key, building it on first use."""
        with self._lock:
            store = self._stores.get(tenant_key)
            if store is not None:
                return store

            url = self.database_url(tenant_key)
            store = LedgerStore(tenant_key, build_engine(url, **self._engine_options))
            if self._create_schema:
                store.create_schema()
            self._stores[tenant_key] = store

        logger.info("ledger_store_opened", extra={"tenant_key": tenant_key})
        return store

    def close_all(self) -> None:
        """Dispose every opened store."""
        with self._lock:
            for store in self._stores.values():
                store.dispose()
            self._stores.clear()


class UrlTemplateStoreFactory(LedgerStoreFactory):
    """
    One database per tenant, named by substituting the key into a template.

    Example:
        UrlTemplateStoreFactory("postgresql://ledger@db/ledger_{tenant}")
    """

    def __init__(self, url_template: str, **kwargs):
        if "{tenant}" not in url_template:
            raise ValidationError(
                "URL template must contain a {tenant} placeholder",
                field="url_template",
            )
        super().__init__(**kwargs)
        self._url_template = url_template

    def database_url(self, tenant_key: str) -> str:
        if not _TENANT_KEY_PATTERN.match(tenant_key):
            raise ValidationError(
                f"Invalid tenant key: {tenant_key!r}", field="tenant_key"
            )
        return self._url_template.format(tenant=tenant_key)


class StaticStoreFactory(LedgerStoreFactory):
    """Fixed mapping of known tenant keys to database URLs."""

    def __init__(self, urls: Mapping[str, str], **kwargs):
        super().__init__(**kwargs)
        self._urls = dict(urls)

    def database_url(self, tenant_key: str) -> str:
        try:
            return self._urls[tenant_key]
        except KeyError:
            raise UnknownTenantError(tenant_key) from None
