"""
In-Memory Store Implementation

A complete, process-local implementation of the entity store interface.
Used by the test suite and for running the engine without a backend.

It behaves like the REST backend where the engine can observe it:
- ids are assigned by the store, starting at 1 per entity kind
- debt derived fields are recomputed on every write
- payments that would overshoot the total owed are refused
- account balances follow their transactions (balance = opening balance
  plus incomes minus expenses), so snapshots always reconcile
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from finance_ledger.models.ledger import (
    ZERO,
    Account,
    AccountDraft,
    Category,
    CategoryDraft,
    Debt,
    DebtDraft,
    Transaction,
    TransactionDraft,
)
from finance_ledger.services.store.interface import (
    EntityStoreInterface,
    NotFoundError,
    StoreError,
    StoreErrorKind,
)


class InMemoryEntityStore(EntityStoreInterface):
    """
    Dict-backed store.

    Entities are immutable models, so handing them out directly is safe;
    every write stores a new instance.
    """

    def __init__(self):
        self._accounts: dict[int, Account] = {}
        self._categories: dict[int, Category] = {}
        self._debts: dict[int, Debt] = {}
        self._transactions: dict[int, Transaction] = {}
        self._next_ids = {"account": 1, "category": 1, "debt": 1, "transaction": 1}

    def _next_id(self, kind: str) -> int:
        value = self._next_ids[kind]
        self._next_ids[kind] = value + 1
        return value

    def _require(self, table: dict, entity_id: int, kind: str):
        try:
            return table[entity_id]
        except KeyError:
            raise NotFoundError(f"{kind.capitalize()} not found: {entity_id}")

    def _adjust_balance(self, account_id: int, delta: Decimal) -> None:
        account = self._require(self._accounts, account_id, "account")
        self._accounts[account_id] = account.model_copy(
            update={"balance": account.balance + delta}
        )

    def _build_debt(self, debt_id: int, user_id: int, name: str, total_owed: Decimal,
                    amount_paid: Decimal, monthly_payment: Decimal) -> Debt:
        if amount_paid > total_owed:
            raise StoreError(
                "Amount paid cannot exceed total owed",
                kind=StoreErrorKind.VALIDATION,
                status_code=400,
            )
        # Derived fields are left unset so the model recomputes them.
        return Debt(
            id=debt_id,
            user_id=user_id,
            name=name,
            total_owed=total_owed,
            amount_paid=amount_paid,
            monthly_payment=monthly_payment,
        )

    def _resolve_transaction(self, transaction: Transaction) -> Transaction:
        """Check references and attach the current category name."""
        self._require(self._accounts, transaction.account_id, "account")
        category = self._require(self._categories, transaction.category_id, "category")
        if transaction.debt_id is not None:
            self._require(self._debts, transaction.debt_id, "debt")
        return transaction.model_copy(update={"category_name": category.name})

    # -- Accounts ------------------------------------------------------------

    async def list_accounts(self, user_id: Optional[int] = None) -> list[Account]:
        return [
            a for a in self._accounts.values()
            if user_id is None or a.user_id == user_id
        ]

    async def get_account(self, account_id: int) -> Account:
        return self._require(self._accounts, account_id, "account")

    async def create_account(self, draft: AccountDraft) -> Account:
        account = Account(id=self._next_id("account"), **draft.model_dump())
        self._accounts[account.id] = account
        return account

    async def update_account(self, account: Account) -> Account:
        self._require(self._accounts, account.id, "account")
        self._accounts[account.id] = account
        return account

    async def delete_account(self, account_id: int) -> None:
        self._require(self._accounts, account_id, "account")
        if any(t.account_id == account_id for t in self._transactions.values()):
            raise StoreError(
                f"Account {account_id} still has transactions",
                kind=StoreErrorKind.CONFLICT,
                status_code=409,
            )
        del self._accounts[account_id]

    # -- Categories ----------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def get_category(self, category_id: int) -> Category:
        return self._require(self._categories, category_id, "category")

    async def create_category(self, draft: CategoryDraft) -> Category:
        category = Category(id=self._next_id("category"), name=draft.name)
        self._categories[category.id] = category
        return category

    async def update_category(self, category: Category) -> Category:
        self._require(self._categories, category.id, "category")
        self._categories[category.id] = category
        for tid, t in self._transactions.items():
            if t.category_id == category.id:
                self._transactions[tid] = t.model_copy(update={"category_name": category.name})
        return category

    async def delete_category(self, category_id: int) -> None:
        # Transactions keep the dangling id; the name no longer resolves.
        self._require(self._categories, category_id, "category")
        del self._categories[category_id]
        for tid, t in self._transactions.items():
            if t.category_id == category_id:
                self._transactions[tid] = t.model_copy(update={"category_name": None})

    # -- Debts ---------------------------------------------------------------

    async def list_debts(self, user_id: Optional[int] = None) -> list[Debt]:
        return [
            d for d in self._debts.values()
            if user_id is None or d.user_id == user_id
        ]

    async def list_active_debts(self, user_id: int) -> list[Debt]:
        return [d for d in await self.list_debts(user_id) if not d.is_paid_off]

    async def list_paid_off_debts(self, user_id: int) -> list[Debt]:
        return [d for d in await self.list_debts(user_id) if d.is_paid_off]

    async def total_remaining_debt(self, user_id: int) -> Decimal:
        return sum(
            (d.remaining_balance for d in await self.list_debts(user_id)),
            ZERO,
        )

    async def get_debt(self, debt_id: int) -> Debt:
        return self._require(self._debts, debt_id, "debt")

    async def create_debt(self, draft: DebtDraft) -> Debt:
        debt = self._build_debt(
            self._next_id("debt"),
            draft.user_id,
            draft.name,
            draft.total_owed,
            draft.amount_paid,
            draft.monthly_payment,
        )
        self._debts[debt.id] = debt
        return debt

    async def update_debt(self, debt: Debt) -> Debt:
        self._require(self._debts, debt.id, "debt")
        updated = self._build_debt(
            debt.id,
            debt.user_id,
            debt.name,
            debt.total_owed,
            debt.amount_paid,
            debt.monthly_payment,
        )
        self._debts[debt.id] = updated
        return updated

    async def apply_debt_payment(self, debt_id: int, amount: Decimal) -> Debt:
        debt = self._require(self._debts, debt_id, "debt")
        if amount <= 0:
            raise StoreError(
                "Payment amount must be positive",
                kind=StoreErrorKind.VALIDATION,
                status_code=400,
            )
        if debt.amount_paid + amount > debt.total_owed:
            raise StoreError(
                "Payment would exceed total owed. Maximum payment: "
                f"{debt.remaining_balance}",
                kind=StoreErrorKind.VALIDATION,
                status_code=400,
            )
        return await self.update_debt(
            debt.model_copy(update={"amount_paid": debt.amount_paid + amount})
        )

    async def delete_debt(self, debt_id: int) -> None:
        self._require(self._debts, debt_id, "debt")
        del self._debts[debt_id]

    # -- Transactions --------------------------------------------------------

    async def list_transactions(
        self,
        user_id: Optional[int] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> list[Transaction]:
        results = []
        for t in self._transactions.values():
            if user_id is not None and t.user_id != user_id:
                continue
            if account_id is not None and t.account_id != account_id:
                continue
            if category_id is not None and t.category_id != category_id:
                continue
            results.append(t)
        return results

    async def get_transaction(self, transaction_id: int) -> Transaction:
        return self._require(self._transactions, transaction_id, "transaction")

    async def create_transaction(self, draft: TransactionDraft) -> Transaction:
        data = draft.model_dump()
        if data["transaction_date"] is None:
            data["transaction_date"] = datetime.now()
        transaction = self._resolve_transaction(
            Transaction(id=self._next_ids["transaction"], **data)
        )
        self._next_id("transaction")
        self._adjust_balance(transaction.account_id, transaction.signed_amount)
        self._transactions[transaction.id] = transaction
        return transaction

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        existing = self._require(self._transactions, transaction.id, "transaction")
        updated = self._resolve_transaction(transaction)
        self._adjust_balance(existing.account_id, -existing.signed_amount)
        self._adjust_balance(updated.account_id, updated.signed_amount)
        self._transactions[updated.id] = updated
        return updated

    async def delete_transaction(self, transaction_id: int) -> None:
        existing = self._require(self._transactions, transaction_id, "transaction")
        self._adjust_balance(existing.account_id, -existing.signed_amount)
        del self._transactions[transaction_id]
