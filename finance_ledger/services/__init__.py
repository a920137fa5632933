"""Services package."""

from finance_ledger.services.store import (
    EntityStoreInterface,
    InMemoryEntityStore,
    NotFoundError,
    RestEntityStore,
    StoreConnectionError,
    StoreError,
    StoreErrorKind,
)

__all__ = [
    "EntityStoreInterface",
    "InMemoryEntityStore",
    "NotFoundError",
    "RestEntityStore",
    "StoreConnectionError",
    "StoreError",
    "StoreErrorKind",
]
