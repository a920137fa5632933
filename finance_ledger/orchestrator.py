"""
Main Orchestrator for Finance Ledger

This module ties together all the components and defines the
end-to-end flows the presentation layer calls:
1. Load (four concurrent reads -> one immutable snapshot -> integrity check)
2. Derive (dashboard, account history, filtered views - pure, no I/O)
3. Move money (transfer / debt payment -> re-fetch -> fresh snapshot)

DESIGN DECISION: The orchestrator enforces the re-fetch-after-write rule.
Mutating flows return a brand-new snapshot read from the store; nothing
derived from the old snapshot is patched in place. This keeps store-side
derived fields (a debt's remaining balance, an account's balance) the
only source of truth.
"""

import asyncio
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict

from finance_ledger.audit import AuditLogger, create_correlation_id
from finance_ledger.config import get_settings
from finance_ledger.config.settings import LedgerSettings, StoreSettings
from finance_ledger.engine import (
    InvalidOperationError,
    MoneyMovementCoordinator,
    account_balance_history,
    check_transfer,
    current_month_period,
    debt_rollup,
    filter_transactions,
    income_expense_totals,
    net_worth,
    recent_transactions,
    spending_by_category,
)
from finance_ledger.models.ledger import (
    Account,
    AccountDraft,
    BalancePoint,
    Category,
    CategoryDraft,
    Debt,
    DebtDraft,
    DebtRollup,
    IncomeExpenseTotals,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    ValidationResult,
)
from finance_ledger.models.snapshot import LedgerSnapshot
from finance_ledger.services.store import (
    EntityStoreInterface,
    InMemoryEntityStore,
    NotFoundError,
    RestEntityStore,
)
from finance_ledger.validation import SnapshotValidator


logger = structlog.get_logger(__name__)


class DashboardSummary(BaseModel):
    """Everything the overview screen shows, derived from one snapshot."""
    model_config = ConfigDict(frozen=True)

    as_of: datetime
    total_assets: Decimal
    total_debt: Decimal
    net_worth: Decimal
    month_spending: dict[str, Decimal]
    month_totals: IncomeExpenseTotals
    debts: DebtRollup
    recent_transactions: tuple[Transaction, ...]


class LedgerFlow:
    """
    Orchestrates reads, derivations and money movements for one user.

    Flow:
    1. load_snapshot() - fan out the reads, wait for all of them
    2. dashboard() / account_history() / transactions_view() on that snapshot
    3. transfer() / pay_debt() - write, then load a new snapshot

    At most one mutating workflow is expected in flight at a time.
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        coordinator: Optional[MoneyMovementCoordinator] = None,
        validator: Optional[SnapshotValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        ledger_settings: Optional[LedgerSettings] = None,
        store_settings: Optional[StoreSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = ledger_settings or get_settings().ledger
        self._user_id = (store_settings or get_settings().store).user_id
        self._coordinator = coordinator or MoneyMovementCoordinator(
            store,
            audit_logger=self._audit_logger,
            ledger_settings=self._settings,
            store_settings=store_settings,
        )
        self._validator = validator or SnapshotValidator()

    @property
    def user_id(self) -> int:
        return self._user_id

    # -- Reads ---------------------------------------------------------------

    async def load_snapshot(self) -> LedgerSnapshot:
        """
        Fetch accounts, categories, debts and transactions concurrently.

        The reads are independent; if any one fails the whole load fails
        with that error.
        """
        correlation_id = create_correlation_id()
        accounts, categories, debts, transactions = await asyncio.gather(
            self._store.list_accounts(self._user_id),
            self._store.list_categories(),
            self._store.list_debts(self._user_id),
            self._store.list_transactions(user_id=self._user_id),
        )
        snapshot = LedgerSnapshot(
            user_id=self._user_id,
            accounts=tuple(accounts),
            categories=tuple(categories),
            debts=tuple(debts),
            transactions=tuple(transactions),
        )
        await self._audit_logger.log_snapshot_loaded(
            user_id=self._user_id,
            counts=snapshot.counts,
            correlation_id=correlation_id,
        )

        result = self._validator.validate(snapshot)
        if result.issues:
            await self._audit_logger.log_integrity_issues(
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )
        return snapshot

    def check_integrity(self, snapshot: LedgerSnapshot) -> ValidationResult:
        return self._validator.validate(snapshot)

    # -- Derived views -------------------------------------------------------

    def dashboard(
        self,
        snapshot: LedgerSnapshot,
        today: Optional[date] = None,
    ) -> DashboardSummary:
        """Net worth, this month's spending and debt progress."""
        period_start, period_end = current_month_period(today)
        month_transactions = [
            t for t in snapshot.transactions
            if period_start <= t.transaction_date < period_end
        ]
        rollup = debt_rollup(snapshot.debts)
        return DashboardSummary(
            as_of=snapshot.fetched_at,
            total_assets=sum((a.balance for a in snapshot.accounts), Decimal("0")),
            total_debt=rollup.total_remaining,
            net_worth=net_worth(snapshot.accounts, snapshot.debts),
            month_spending=spending_by_category(
                snapshot.transactions, period_start, period_end
            ),
            month_totals=income_expense_totals(month_transactions),
            debts=rollup,
            recent_transactions=tuple(recent_transactions(
                snapshot.transactions,
                limit=self._settings.recent_transactions_limit,
            )),
        )

    def account_history(
        self,
        snapshot: LedgerSnapshot,
        account_id: int,
        now: Optional[datetime] = None,
    ) -> list[BalancePoint]:
        """
        Reconstructed balance series of one account.

        Raises:
            NotFoundError: If the account is not in the snapshot
        """
        account = snapshot.account(account_id)
        if account is None:
            raise NotFoundError(f"Account not found in snapshot: {account_id}")
        return account_balance_history(
            account,
            snapshot.transactions,
            now=now or snapshot.fetched_at,
            window=self._settings.balance_history_points,
        )

    def transactions_view(
        self,
        snapshot: LedgerSnapshot,
        criteria: Optional[TransactionFilter] = None,
    ) -> tuple[list[Transaction], IncomeExpenseTotals]:
        """Filtered transactions plus their income/expense totals."""
        matching = filter_transactions(snapshot.transactions, criteria)
        return matching, income_expense_totals(matching)

    # -- Money movement ------------------------------------------------------

    async def transfer(
        self,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        description: Optional[str] = None,
    ) -> LedgerSnapshot:
        """
        Transfer between two accounts, then return a fresh snapshot.

        Account details are read from the store so the generated
        descriptions use current names. Preconditions that need only
        the ids and the amount are checked before that read.
        """
        try:
            amount = check_transfer(from_account_id, to_account_id, amount)
        except InvalidOperationError as e:
            await self._audit_logger.log_rejected(
                operation="transfer",
                reason=str(e)[:300],
                entity_type="account",
                entity_id=from_account_id,
                correlation_id=create_correlation_id(),
            )
            raise

        from_account, to_account = await asyncio.gather(
            self._store.get_account(from_account_id),
            self._store.get_account(to_account_id),
        )
        await self._coordinator.transfer(from_account, to_account, amount, description)
        return await self.load_snapshot()

    async def pay_debt(self, debt_id: int, amount: Decimal) -> LedgerSnapshot:
        """Pay towards a debt, then return a fresh snapshot."""
        debt = await self._store.get_debt(debt_id)
        await self._coordinator.make_debt_payment(debt, amount)
        return await self.load_snapshot()

    # -- Entity pass-through -------------------------------------------------

    async def create_account(self, name: str, balance: Decimal = Decimal("0")) -> Account:
        return await self._store.create_account(
            AccountDraft(user_id=self._user_id, name=name, balance=balance)
        )

    async def update_account(self, account: Account) -> Account:
        return await self._store.update_account(account)

    async def delete_account(self, account_id: int) -> None:
        await self._store.delete_account(account_id)

    async def create_category(self, name: str) -> Category:
        return await self._store.create_category(CategoryDraft(name=name))

    async def update_category(self, category: Category) -> Category:
        return await self._store.update_category(category)

    async def delete_category(self, category_id: int) -> None:
        await self._store.delete_category(category_id)

    async def create_debt(
        self,
        name: str,
        total_owed: Decimal,
        monthly_payment: Decimal,
        amount_paid: Decimal = Decimal("0"),
    ) -> Debt:
        return await self._store.create_debt(DebtDraft(
            user_id=self._user_id,
            name=name,
            total_owed=total_owed,
            amount_paid=amount_paid,
            monthly_payment=monthly_payment,
        ))

    async def update_debt(self, debt: Debt) -> Debt:
        return await self._store.update_debt(debt)

    async def delete_debt(self, debt_id: int) -> None:
        await self._store.delete_debt(debt_id)

    async def create_transaction(self, draft: TransactionDraft) -> Transaction:
        return await self._store.create_transaction(draft)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        return await self._store.update_transaction(transaction)

    async def delete_transaction(self, transaction_id: int) -> None:
        await self._store.delete_transaction(transaction_id)


def create_app_components(
    use_remote_store: bool = True,
) -> tuple[LedgerFlow, EntityStoreInterface]:
    """
    Factory function to create all application components.

    Args:
        use_remote_store: Whether to talk to the REST backend.
                          Set to False to run against an in-memory store.

    Returns:
        (ledger_flow, store)
    """
    settings = get_settings()
    audit_logger = AuditLogger()

    if use_remote_store:
        store: EntityStoreInterface = RestEntityStore(settings.store)
    else:
        store = InMemoryEntityStore()
        logger.info("using_in_memory_store")

    flow = LedgerFlow(
        store,
        audit_logger=audit_logger,
        ledger_settings=settings.ledger,
        store_settings=settings.store,
    )
    return flow, store
