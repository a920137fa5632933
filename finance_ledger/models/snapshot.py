"""
Ledger Snapshot

The set of entities fetched from the store at one point in time.

DESIGN DECISION: A snapshot is immutable. Every derived number (balances,
net worth, spending) is computed from one snapshot, and after any write
the caller fetches a new snapshot instead of patching the old one.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_ledger.models.ledger import Account, Category, Debt, Transaction


class LedgerSnapshot(BaseModel):
    """Accounts, categories, debts and transactions as of `fetched_at`."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    fetched_at: datetime = Field(default_factory=datetime.now)
    accounts: tuple[Account, ...] = ()
    categories: tuple[Category, ...] = ()
    debts: tuple[Debt, ...] = ()
    transactions: tuple[Transaction, ...] = ()

    def account(self, account_id: int) -> Optional[Account]:
        for account in self.accounts:
            if account.id == account_id:
                return account
        return None

    def debt(self, debt_id: int) -> Optional[Debt]:
        for debt in self.debts:
            if debt.id == debt_id:
                return debt
        return None

    def transactions_for_account(self, account_id: int) -> list[Transaction]:
        """The account's transactions, in store order."""
        return [t for t in self.transactions if t.account_id == account_id]

    @property
    def category_names(self) -> dict[int, str]:
        return {c.id: c.name for c in self.categories}

    @property
    def counts(self) -> dict[str, int]:
        return {
            "accounts": len(self.accounts),
            "categories": len(self.categories),
            "debts": len(self.debts),
            "transactions": len(self.transactions),
        }
