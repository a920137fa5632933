"""
Store Services Package

Provides the abstract entity store interface and its implementations.
The REST backend is the production store; the in-memory store backs tests
and offline use.
"""

from finance_ledger.services.store.interface import (
    EntityStoreInterface,
    NotFoundError,
    StoreConnectionError,
    StoreError,
    StoreErrorKind,
)
from finance_ledger.services.store.memory import InMemoryEntityStore
from finance_ledger.services.store.rest_client import RestEntityStore

__all__ = [
    # Interface
    "EntityStoreInterface",
    # Exceptions
    "NotFoundError",
    "StoreConnectionError",
    "StoreError",
    "StoreErrorKind",
    # Implementations
    "InMemoryEntityStore",
    "RestEntityStore",
]
