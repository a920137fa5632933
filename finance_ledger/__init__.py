"""
Finance Ledger - Source Package

The derived-ledger engine behind a personal-finance tracker: accounts,
categorized income/expense transactions and debts, kept in a remote
entity store.

DESIGN PRINCIPLES:
1. The store is the source of truth - we only read snapshots and issue writes
2. Derived numbers are recomputed from a fresh snapshot, never patched in place
3. Fail early, fail visibly - every failure reaches the caller typed by kind
4. Multi-step money movements are audited step by step
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Ledger Team"
