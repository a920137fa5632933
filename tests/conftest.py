"""
Shared fixtures.

Test strategy:
1. Pure engine functions are tested on hand-built entities
2. Flows run against the in-memory store (failure-injecting subclasses
   stand in for a misbehaving backend)
3. No real network calls in tests (the REST client gets a mocked session)
"""

import pytest

from finance_ledger.config.settings import LedgerSettings, StoreSettings
from finance_ledger.services.store import InMemoryEntityStore


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings(
        balance_history_points=12,
        transfer_category_id=1,
        recent_transactions_limit=10,
    )


@pytest.fixture
def store_settings() -> StoreSettings:
    return StoreSettings(base_url="http://store.test", user_id=1, timeout_seconds=5)


@pytest.fixture
def store() -> InMemoryEntityStore:
    return InMemoryEntityStore()
