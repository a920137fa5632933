"""
Core Data Models for Finance Ledger

These models define the strict schemas for every entity the engine reads
from or writes to the entity store. They are designed to:
1. Enforce the creation-time constraints before a write reaches the store
2. Keep fetched entities immutable for the lifetime of a snapshot
3. Carry money as Decimal end to end - never float

DESIGN DECISION: Read entities and write drafts are separate models.
A draft is what we ask the store to persist; an entity is what the store
says it persisted (server-assigned id, recomputed derived fields). The
engine only ever trusts the latter.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a transaction.

    DESIGN DECISION: Direction lives here, never in the sign of the amount.
    Amounts are always strictly positive.
    """
    INCOME = "income"
    EXPENSE = "expense"


class Recurrence(str, Enum):
    """Informational recurrence tag. Nothing is auto-generated from it."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Read entities accept whatever precision the store returns; drafts are
# held to two decimal places.
Money = Decimal
PositiveMoney = Annotated[Decimal, Field(gt=0)]
DraftMoney = Annotated[Decimal, Field(gt=0, decimal_places=2)]


def calculate_payment_progress(amount_paid: Decimal, total_owed: Decimal) -> float:
    """amount_paid / total_owed as a percentage, 0 when nothing is owed."""
    if total_owed == 0:
        return 0.0
    return float(amount_paid / total_owed * HUNDRED)


# =============================================================================
# ENTITIES - as persisted by the store
# =============================================================================

class Account(BaseModel):
    """A money account. `balance` is the store's current snapshot value."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int
    user_id: int
    name: str = Field(..., min_length=1, max_length=200)
    balance: Money = ZERO


class Category(BaseModel):
    """A flat (non-hierarchical) transaction category."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int
    name: str = Field(..., min_length=1, max_length=100)


class Debt(BaseModel):
    """
    A debt being paid down.

    remaining_balance and payment_progress are computed by the store and
    treated as authoritative. They are only derived locally when the store
    response leaves them out.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int
    user_id: int
    name: str = Field(..., min_length=1, max_length=200)
    total_owed: Money
    amount_paid: Money = ZERO
    monthly_payment: Money
    remaining_balance: Optional[Money] = None
    payment_progress: Optional[float] = None

    @model_validator(mode='before')
    @classmethod
    def fill_derived_fields(cls, data):
        """Derive remaining balance/progress when the source omits them."""
        if not isinstance(data, dict):
            return data
        total = data.get("total_owed")
        if total is None:
            return data
        paid = data.get("amount_paid")
        paid = ZERO if paid is None else paid
        data = dict(data)
        if data.get("remaining_balance") is None:
            data["remaining_balance"] = Decimal(str(total)) - Decimal(str(paid))
        if data.get("payment_progress") is None:
            data["payment_progress"] = calculate_payment_progress(
                Decimal(str(paid)), Decimal(str(total))
            )
        return data

    @property
    def is_paid_off(self) -> bool:
        """A debt with nothing left to pay accepts no further payments."""
        return self.remaining_balance <= 0


class Transaction(BaseModel):
    """
    A single income or expense against one account.

    category_name is None when the store could not resolve the category
    (for example it was deleted). That is a data-integrity problem reported
    by the snapshot validator, not a reason to fail.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: int
    user_id: int
    account_id: int
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    debt_id: Optional[int] = None
    amount: PositiveMoney
    type: TransactionType
    description: str = ""
    transaction_date: datetime
    recurrence: Optional[Recurrence] = None

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this transaction on its account's balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount

    @property
    def year_month(self) -> str:
        return self.transaction_date.strftime("%Y-%m")


# =============================================================================
# DRAFTS - write requests
# =============================================================================

class AccountDraft(BaseModel):
    """New account. Balance can only go negative later, through transactions."""
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: int
    name: str = Field(..., min_length=1, max_length=200)
    balance: Annotated[Decimal, Field(ge=0, decimal_places=2)] = ZERO


class CategoryDraft(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=100)


class DebtDraft(BaseModel):
    """New debt."""
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: int
    name: str = Field(..., min_length=1, max_length=200)
    total_owed: DraftMoney
    amount_paid: Annotated[Decimal, Field(ge=0, decimal_places=2)] = ZERO
    monthly_payment: DraftMoney

    @model_validator(mode='after')
    def validate_amount_paid(self) -> 'DebtDraft':
        if self.amount_paid > self.total_owed:
            raise ValueError("Amount paid cannot exceed total owed")
        return self


class TransactionDraft(BaseModel):
    """
    New transaction.

    transaction_date is normally left unset - the store stamps the
    creation time.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: int
    account_id: int
    category_id: int
    debt_id: Optional[int] = None
    amount: DraftMoney
    type: TransactionType
    description: str = Field(..., min_length=3, max_length=255)
    transaction_date: Optional[datetime] = None
    recurrence: Optional[Recurrence] = None


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class BalancePoint(BaseModel):
    """One point of a reconstructed balance series."""
    model_config = ConfigDict(frozen=True)

    date: datetime
    balance: Decimal
    transaction_id: Optional[int] = Field(
        default=None,
        description="Transaction that produced this balance; None for the 'now' point"
    )


class TransactionFilter(BaseModel):
    """Conjunctive transaction filter. Unset criteria match everything."""
    model_config = ConfigDict(frozen=True)

    category_id: Optional[int] = None
    type: Optional[TransactionType] = None
    year_month: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="Calendar month as YYYY-MM"
    )


class IncomeExpenseTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expenses


class AccountTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    account_count: int = 0
    total_balance: Decimal = ZERO
    average_balance: Decimal = ZERO


class DebtRollup(BaseModel):
    """Totals and active/paid-off partition over a set of debts."""
    model_config = ConfigDict(frozen=True)

    total_owed: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_remaining: Decimal = ZERO
    overall_progress: float = 0.0
    active: tuple[Debt, ...] = ()
    paid_off: tuple[Debt, ...] = ()


class TransferResult(BaseModel):
    """Both legs of a completed transfer, as persisted by the store."""
    model_config = ConfigDict(frozen=True)

    debit: Transaction
    credit: Transaction

    @field_validator('debit')
    @classmethod
    def debit_is_expense(cls, v: Transaction) -> Transaction:
        if v.type != TransactionType.EXPENSE:
            raise ValueError("Transfer debit leg must be an expense")
        return v

    @field_validator('credit')
    @classmethod
    def credit_is_income(cls, v: Transaction) -> Transaction:
        if v.type != TransactionType.INCOME:
            raise ValueError("Transfer credit leg must be an income")
        return v


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single data-integrity issue found in a snapshot."""

    entity_type: str = Field(
        ...,
        description="Kind of entity with the issue (account, debt, transaction)"
    )
    entity_id: int = Field(
        ...,
        description="Store id of that entity"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing_category', 'overpaid')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of checking a snapshot for integrity problems.

    Stage 1: References (transactions point at existing entities)
    Stage 2: Consistency (debt amounts agree with each other)
    """

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    references_valid: bool = Field(
        ...,
        description="Did every reference resolve?"
    )
    consistency_valid: bool = Field(
        ...,
        description="Are derived amounts consistent?"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All issues found"
    )

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
