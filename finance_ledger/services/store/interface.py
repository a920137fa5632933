"""
Abstract Entity Store Interface

DESIGN DECISION: We define an abstract interface for the remote entity store.
This allows us to:
1. Talk to the REST backend today and something else later
2. Use in-memory storage for testing
3. Keep the ledger engine decoupled from transport details

The interface is intentionally simple - we're not building a full ORM.
Per entity kind: list, get, create, update (full replace), delete. Debts
add a few server-side queries and the payment operation.

Every method may raise StoreError. Callers branch on `error.kind`,
never on transport-specific detail.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Optional

from finance_ledger.models.ledger import (
    Account,
    AccountDraft,
    Category,
    CategoryDraft,
    Debt,
    DebtDraft,
    Transaction,
    TransactionDraft,
)


class StoreErrorKind(str, Enum):
    """Category of a store failure."""
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    TRANSPORT = "transport"
    SERVER = "server"


class StoreError(Exception):
    """Base exception for store operations."""

    def __init__(
        self,
        message: str,
        kind: StoreErrorKind = StoreErrorKind.SERVER,
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(StoreError):
    """Entity not found in the store."""

    def __init__(self, message: str, status_code: Optional[int] = 404):
        super().__init__(message, kind=StoreErrorKind.NOT_FOUND, status_code=status_code)


class StoreConnectionError(StoreError):
    """Could not reach the store backend."""

    def __init__(self, message: str):
        super().__init__(message, kind=StoreErrorKind.TRANSPORT)


class EntityStoreInterface(ABC):
    """
    Abstract interface for entity store operations.

    Any store implementation (REST backend, in-memory, etc.)
    must implement these methods. Every write returns the entity
    as the store persisted it.
    """

    # -- Accounts ------------------------------------------------------------

    @abstractmethod
    async def list_accounts(self, user_id: Optional[int] = None) -> list[Account]:
        """List all accounts, or only those owned by `user_id`."""

    @abstractmethod
    async def get_account(self, account_id: int) -> Account:
        """
        Retrieve an account by id.

        Raises:
            NotFoundError: If the account doesn't exist
        """

    @abstractmethod
    async def create_account(self, draft: AccountDraft) -> Account:
        """Create an account and return it with its assigned id."""

    @abstractmethod
    async def update_account(self, account: Account) -> Account:
        """
        Replace an existing account.

        Raises:
            NotFoundError: If the account doesn't exist
        """

    @abstractmethod
    async def delete_account(self, account_id: int) -> None:
        """Delete an account by id."""

    # -- Categories ----------------------------------------------------------

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """List all categories."""

    @abstractmethod
    async def get_category(self, category_id: int) -> Category:
        """Retrieve a category by id."""

    @abstractmethod
    async def create_category(self, draft: CategoryDraft) -> Category:
        """Create a category."""

    @abstractmethod
    async def update_category(self, category: Category) -> Category:
        """Replace an existing category."""

    @abstractmethod
    async def delete_category(self, category_id: int) -> None:
        """
        Delete a category.

        What happens to transactions still referencing it is decided
        by the store; whatever error it returns is surfaced as-is.
        """

    # -- Debts ---------------------------------------------------------------

    @abstractmethod
    async def list_debts(self, user_id: Optional[int] = None) -> list[Debt]:
        """List all debts, or only those owned by `user_id`."""

    @abstractmethod
    async def list_active_debts(self, user_id: int) -> list[Debt]:
        """Debts with remaining balance > 0."""

    @abstractmethod
    async def list_paid_off_debts(self, user_id: int) -> list[Debt]:
        """Debts with remaining balance <= 0."""

    @abstractmethod
    async def total_remaining_debt(self, user_id: int) -> Decimal:
        """Sum of remaining balances across the user's debts."""

    @abstractmethod
    async def get_debt(self, debt_id: int) -> Debt:
        """Retrieve a debt by id."""

    @abstractmethod
    async def create_debt(self, draft: DebtDraft) -> Debt:
        """Create a debt. Derived fields are computed by the store."""

    @abstractmethod
    async def update_debt(self, debt: Debt) -> Debt:
        """Replace an existing debt."""

    @abstractmethod
    async def apply_debt_payment(self, debt_id: int, amount: Decimal) -> Debt:
        """
        Add `amount` to the debt's amount paid in one store-side update.

        Returns:
            The debt with recomputed remaining balance and progress

        Raises:
            StoreError: kind VALIDATION if the store refuses the payment
        """

    @abstractmethod
    async def delete_debt(self, debt_id: int) -> None:
        """Delete a debt."""

    # -- Transactions --------------------------------------------------------

    @abstractmethod
    async def list_transactions(
        self,
        user_id: Optional[int] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> list[Transaction]:
        """
        List transactions with optional filters.

        Args:
            user_id: Only transactions owned by this user
            account_id: Only transactions on this account
            category_id: Only transactions in this category

        Returns:
            List of matching transactions, in store order
        """

    @abstractmethod
    async def get_transaction(self, transaction_id: int) -> Transaction:
        """Retrieve a transaction by id."""

    @abstractmethod
    async def create_transaction(self, draft: TransactionDraft) -> Transaction:
        """Create a transaction. The store stamps the date when unset."""

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """Replace an existing transaction."""

    @abstractmethod
    async def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction."""
