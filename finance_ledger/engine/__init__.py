"""Derived-ledger engine: balance reconstruction, aggregation, money movement."""

from finance_ledger.engine.aggregation import (
    UNCATEGORIZED,
    account_totals,
    current_month_period,
    debt_rollup,
    filter_transactions,
    income_expense_totals,
    month_bounds,
    monthly_totals,
    net_worth,
    recent_transactions,
    spending_by_category,
)
from finance_ledger.engine.balances import (
    account_balance_history,
    reconstruct_balance_history,
    starting_balance,
)
from finance_ledger.engine.movement import (
    DebtPaidOffError,
    DebtPaymentError,
    ExcessPaymentError,
    InvalidOperationError,
    MoneyMovementCoordinator,
    PartialTransferFailure,
    TransferError,
    check_transfer,
    to_money,
)

__all__ = [
    # Aggregation
    "UNCATEGORIZED",
    "account_totals",
    "current_month_period",
    "debt_rollup",
    "filter_transactions",
    "income_expense_totals",
    "month_bounds",
    "monthly_totals",
    "net_worth",
    "recent_transactions",
    "spending_by_category",
    # Balance reconstruction
    "account_balance_history",
    "reconstruct_balance_history",
    "starting_balance",
    # Money movement
    "DebtPaidOffError",
    "DebtPaymentError",
    "ExcessPaymentError",
    "InvalidOperationError",
    "MoneyMovementCoordinator",
    "PartialTransferFailure",
    "TransferError",
    "check_transfer",
    "to_money",
]
