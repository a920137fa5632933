"""
Aggregation Engine

Rollups over a fetched snapshot: net worth, spending by category, debt
progress, income/expense totals, filtered views.

GUARANTEES:
- Pure functions - no store access, inputs are never modified
- Defined for empty input (zero / empty results, never an exception)
- Money stays Decimal; only percentages are floats
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

from finance_ledger.models.ledger import (
    ZERO,
    Account,
    AccountTotals,
    Debt,
    DebtRollup,
    IncomeExpenseTotals,
    Transaction,
    TransactionFilter,
    TransactionType,
    calculate_payment_progress,
)


UNCATEGORIZED = "Uncategorized"


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """[start, end) of a calendar month."""
    start = datetime(year, month, 1)
    if month == 12:
        end = datetime(year + 1, 1, 1)
    else:
        end = datetime(year, month + 1, 1)
    return start, end


def current_month_period(today: Optional[date] = None) -> tuple[datetime, datetime]:
    today = today or date.today()
    return month_bounds(today.year, today.month)


def net_worth(accounts: Iterable[Account], debts: Iterable[Debt]) -> Decimal:
    """Sum of account balances minus sum of remaining debt."""
    assets = sum((a.balance for a in accounts), ZERO)
    liabilities = sum((d.remaining_balance for d in debts), ZERO)
    return assets - liabilities


def account_totals(accounts: Iterable[Account]) -> AccountTotals:
    balances = [a.balance for a in accounts]
    if not balances:
        return AccountTotals()
    total = sum(balances, ZERO)
    return AccountTotals(
        account_count=len(balances),
        total_balance=total,
        average_balance=total / len(balances),
    )


def spending_by_category(
    transactions: Iterable[Transaction],
    period_start: datetime,
    period_end: datetime,
) -> dict[str, Decimal]:
    """
    Expense totals per category name for [period_start, period_end).

    Categories without matching expenses are absent, not zero. Expenses
    whose category no longer resolves are grouped under "Uncategorized".
    """
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        if not (period_start <= t.transaction_date < period_end):
            continue
        totals[t.category_name or UNCATEGORIZED] += t.amount
    return dict(totals)


def debt_rollup(debts: Iterable[Debt]) -> DebtRollup:
    """Totals, overall progress and the active / paid-off partition."""
    debts = list(debts)
    total_owed = sum((d.total_owed for d in debts), ZERO)
    total_paid = sum((d.amount_paid for d in debts), ZERO)
    return DebtRollup(
        total_owed=total_owed,
        total_paid=total_paid,
        total_remaining=sum((d.remaining_balance for d in debts), ZERO),
        overall_progress=calculate_payment_progress(total_paid, total_owed),
        active=tuple(d for d in debts if not d.is_paid_off),
        paid_off=tuple(d for d in debts if d.is_paid_off),
    )


def filter_transactions(
    transactions: Iterable[Transaction],
    criteria: Optional[TransactionFilter] = None,
) -> list[Transaction]:
    """All criteria must match; unset criteria match everything."""
    criteria = criteria or TransactionFilter()
    return [
        t for t in transactions
        if (criteria.category_id is None or t.category_id == criteria.category_id)
        and (criteria.type is None or t.type == criteria.type)
        and (criteria.year_month is None or t.year_month == criteria.year_month)
    ]


def income_expense_totals(transactions: Iterable[Transaction]) -> IncomeExpenseTotals:
    income = ZERO
    expenses = ZERO
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expenses += t.amount
    return IncomeExpenseTotals(total_income=income, total_expenses=expenses)


def monthly_totals(transactions: Iterable[Transaction]) -> dict[str, IncomeExpenseTotals]:
    """Income/expense totals per YYYY-MM, oldest month first."""
    by_month: dict[str, list[Transaction]] = defaultdict(list)
    for t in transactions:
        by_month[t.year_month].append(t)
    return {
        month: income_expense_totals(by_month[month])
        for month in sorted(by_month)
    }


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: int = 10,
) -> list[Transaction]:
    """Newest first."""
    ordered = sorted(transactions, key=lambda t: t.transaction_date, reverse=True)
    return ordered[:limit]
