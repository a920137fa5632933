"""
Balance Reconstruction

The store only keeps an account's *current* balance. Historical balances
are recovered from the transaction log:

    current = starting + sum(incomes) - sum(expenses)

so walking the log backwards from the current balance undoes every
transaction and yields the balance before the first one. Walking forward
again produces one point per transaction.

Everything here is a pure function of its inputs: no store access,
no writes, same inputs -> same output.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from finance_ledger.models.ledger import Account, BalancePoint, Transaction


DEFAULT_WINDOW = 12


def sort_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """
    Oldest first.

    Same-timestamp transactions keep their incoming order (sorted() is
    stable), so the result is only as deterministic as the store's
    ordering.
    """
    return sorted(transactions, key=lambda t: t.transaction_date)


def starting_balance(
    current_balance: Decimal,
    transactions: Iterable[Transaction],
) -> Decimal:
    """Balance before the earliest transaction."""
    balance = current_balance
    for transaction in reversed(sort_transactions(transactions)):
        balance -= transaction.signed_amount
    return balance


def reconstruct_balance_history(
    current_balance: Decimal,
    transactions: Iterable[Transaction],
    *,
    now: Optional[datetime] = None,
    window: int = DEFAULT_WINDOW,
) -> list[BalancePoint]:
    """
    Rebuild the (date, balance) series of one account.

    Args:
        current_balance: The account's balance as stored right now
        transactions: The account's transactions, any order
        now: Timestamp of the closing point (defaults to datetime.now())
        window: Keep only the last `window` points

    Returns:
        One point per transaction (post-transaction balance) followed by
        a closing point at `now` holding `current_balance`, trimmed to the
        last `window` points. With no transactions that is a single point.
    """
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")

    ordered = sort_transactions(transactions)
    balance = starting_balance(current_balance, ordered)

    points = []
    for transaction in ordered:
        balance += transaction.signed_amount
        points.append(BalancePoint(
            date=transaction.transaction_date,
            balance=balance,
            transaction_id=transaction.id,
        ))

    points.append(BalancePoint(
        date=now or datetime.now(),
        balance=current_balance,
    ))

    return points[-window:]


def account_balance_history(
    account: Account,
    transactions: Iterable[Transaction],
    *,
    now: Optional[datetime] = None,
    window: int = DEFAULT_WINDOW,
) -> list[BalancePoint]:
    """Balance history of `account`, ignoring other accounts' transactions."""
    own = [t for t in transactions if t.account_id == account.id]
    return reconstruct_balance_history(
        account.balance,
        own,
        now=now,
        window=window,
    )
