"""Tests for snapshot integrity validation."""

from datetime import datetime
from decimal import Decimal

from finance_ledger.models.ledger import Category, Debt, TransactionType
from finance_ledger.models.snapshot import LedgerSnapshot
from finance_ledger.validation import SnapshotValidator
from tests.factories import make_account, make_debt, make_tx


WHEN = datetime(2024, 3, 1)


def clean_snapshot(**overrides) -> LedgerSnapshot:
    data = dict(
        user_id=1,
        accounts=(make_account(1, "100"),),
        categories=(Category(id=1, name="Groceries"),),
        debts=(make_debt(1, "500", "100"),),
        transactions=(make_tx(1, "10", TransactionType.EXPENSE, WHEN),),
    )
    data.update(overrides)
    return LedgerSnapshot(**data)


class TestSnapshotValidator:

    def setup_method(self):
        self.validator = SnapshotValidator()

    def test_clean_snapshot(self):
        result = self.validator.validate(clean_snapshot())

        assert result.is_valid
        assert result.issues == []
        assert self.validator.get_user_friendly_summary(result) == "All records are consistent."

    def test_deleted_category_is_reported(self):
        result = self.validator.validate(clean_snapshot(categories=()))

        assert not result.references_valid
        assert result.consistency_valid
        assert [i.issue_type for i in result.issues] == ["missing_category"]
        assert result.issues[0].entity_id == 1

    def test_unknown_account_is_reported(self):
        transactions = (make_tx(1, "10", TransactionType.EXPENSE, WHEN, account_id=7),)
        result = self.validator.validate(clean_snapshot(transactions=transactions))

        assert [i.issue_type for i in result.issues] == ["missing_account"]
        assert result.error_count == 1

    def test_overpaid_debt_is_reported(self):
        debts = (make_debt(1, "100", "150"),)
        result = self.validator.validate(clean_snapshot(debts=debts))

        assert not result.consistency_valid
        assert [i.issue_type for i in result.issues] == ["overpaid"]

    def test_remaining_balance_mismatch_is_a_warning(self):
        debt = Debt(
            id=1,
            user_id=1,
            name="Card",
            total_owed=Decimal("500"),
            amount_paid=Decimal("100"),
            monthly_payment=Decimal("50"),
            remaining_balance=Decimal("450"),
        )
        result = self.validator.validate(clean_snapshot(debts=(debt,)))

        assert result.is_valid
        assert [i.severity for i in result.issues] == ["warning"]

    def test_summary_lists_every_issue(self):
        result = self.validator.validate(clean_snapshot(categories=(), accounts=()))
        summary = self.validator.get_user_friendly_summary(result)

        assert summary.startswith("Found 2 issue(s)")
        assert "[error]" in summary
