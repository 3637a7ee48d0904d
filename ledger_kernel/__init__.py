"""
Ledger Kernel - double-entry accounting core for the PGC chart.

A multi-tenant, append-mostly general ledger with:
- Hierarchical chart of accounts classified by PGC group prefix
- Balanced, sequentially numbered journal entries
- Atomically maintained per-account running balances
- Period locking and forward-only voiding
"""

__version__ = "0.1.0"
