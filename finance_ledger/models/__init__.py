"""
Data Models Package

This package contains all Pydantic models used in the Finance Ledger engine.
All data flowing between the store and the engine must conform to these schemas.
"""

from finance_ledger.models.ledger import (
    Account,
    AccountDraft,
    AccountTotals,
    BalancePoint,
    Category,
    CategoryDraft,
    Debt,
    DebtDraft,
    DebtRollup,
    IncomeExpenseTotals,
    Recurrence,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionType,
    TransferResult,
    ValidationIssue,
    ValidationResult,
)
from finance_ledger.models.snapshot import LedgerSnapshot
from finance_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger entities
    "Account",
    "AccountDraft",
    "Category",
    "CategoryDraft",
    "Debt",
    "DebtDraft",
    "Recurrence",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    # Derived views
    "AccountTotals",
    "BalancePoint",
    "DebtRollup",
    "IncomeExpenseTotals",
    "LedgerSnapshot",
    "TransactionFilter",
    "TransferResult",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
