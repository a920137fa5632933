"""Tests for ledger entity and draft models."""

from datetime import datetime
from decimal import Decimal

import pytest

from finance_ledger.models.ledger import (
    AccountDraft,
    CategoryDraft,
    Debt,
    DebtDraft,
    TransactionDraft,
    TransactionFilter,
    TransactionType,
    TransferResult,
)
from tests.factories import make_debt, make_tx


class TestDrafts:
    """Creation-time constraints are enforced before anything is written."""

    def test_account_draft_rejects_negative_opening_balance(self):
        with pytest.raises(ValueError):
            AccountDraft(user_id=1, name="Checking", balance=Decimal("-1"))

    def test_account_draft_strips_whitespace(self):
        draft = AccountDraft(user_id=1, name="  Savings  ")
        assert draft.name == "Savings"
        assert draft.balance == Decimal("0")

    def test_category_name_needs_two_characters(self):
        with pytest.raises(ValueError):
            CategoryDraft(name="F")
        assert CategoryDraft(name="Fo").name == "Fo"

    def test_transaction_description_needs_three_characters(self):
        with pytest.raises(ValueError):
            TransactionDraft(
                user_id=1,
                account_id=1,
                category_id=1,
                amount=Decimal("10"),
                type=TransactionType.EXPENSE,
                description="ab",
            )

    def test_transaction_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            TransactionDraft(
                user_id=1,
                account_id=1,
                category_id=1,
                amount=Decimal("0"),
                type=TransactionType.INCOME,
                description="Salary",
            )

    def test_debt_draft_rejects_amount_paid_above_total(self):
        with pytest.raises(ValueError, match="Amount paid cannot exceed total owed"):
            DebtDraft(
                user_id=1,
                name="Car loan",
                total_owed=Decimal("100"),
                amount_paid=Decimal("150"),
                monthly_payment=Decimal("10"),
            )

    def test_debt_draft_requires_positive_monthly_payment(self):
        with pytest.raises(ValueError):
            DebtDraft(
                user_id=1,
                name="Car loan",
                total_owed=Decimal("100"),
                monthly_payment=Decimal("0"),
            )


class TestDebt:
    """Derived debt fields."""

    def test_derived_fields_filled_when_missing(self):
        debt = make_debt(1, "200", "50")
        assert debt.remaining_balance == Decimal("150")
        assert debt.payment_progress == pytest.approx(25.0)
        assert debt.is_paid_off is False

    def test_store_values_are_kept(self):
        debt = Debt(
            id=1,
            user_id=1,
            name="Card",
            total_owed=Decimal("200"),
            amount_paid=Decimal("50"),
            monthly_payment=Decimal("20"),
            remaining_balance=Decimal("149.99"),
            payment_progress=25.5,
        )
        assert debt.remaining_balance == Decimal("149.99")
        assert debt.payment_progress == 25.5

    def test_fully_paid_debt_is_paid_off(self):
        debt = make_debt(1, "200", "200")
        assert debt.remaining_balance == Decimal("0")
        assert debt.payment_progress == pytest.approx(100.0)
        assert debt.is_paid_off is True

    def test_entities_are_immutable(self):
        debt = make_debt(1, "200", "50")
        with pytest.raises(ValueError):
            debt.amount_paid = Decimal("60")


class TestTransaction:

    def test_signed_amount_follows_type(self):
        income = make_tx(1, "40", TransactionType.INCOME, datetime(2024, 3, 1))
        expense = make_tx(2, "40", TransactionType.EXPENSE, datetime(2024, 3, 1))
        assert income.signed_amount == Decimal("40")
        assert expense.signed_amount == Decimal("-40")

    def test_negative_amounts_are_rejected(self):
        with pytest.raises(ValueError):
            make_tx(1, "-40", TransactionType.INCOME, datetime(2024, 3, 1))

    def test_year_month(self):
        tx = make_tx(1, "40", TransactionType.INCOME, datetime(2024, 3, 9))
        assert tx.year_month == "2024-03"


class TestTransactionFilter:

    def test_rejects_malformed_month(self):
        with pytest.raises(ValueError):
            TransactionFilter(year_month="2024-13")
        with pytest.raises(ValueError):
            TransactionFilter(year_month="March")

    def test_all_criteria_optional(self):
        criteria = TransactionFilter()
        assert criteria.category_id is None
        assert criteria.type is None
        assert criteria.year_month is None


class TestTransferResult:

    def test_legs_must_have_matching_directions(self):
        when = datetime(2024, 3, 1)
        expense = make_tx(1, "10", TransactionType.EXPENSE, when)
        income = make_tx(2, "10", TransactionType.INCOME, when)
        assert TransferResult(debit=expense, credit=income).debit.id == 1
        with pytest.raises(ValueError):
            TransferResult(debit=income, credit=expense)
