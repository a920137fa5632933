"""Tests for balance reconstruction."""

from datetime import datetime
from decimal import Decimal
from itertools import permutations

import pytest

from finance_ledger.engine.balances import (
    account_balance_history,
    reconstruct_balance_history,
    starting_balance,
)
from finance_ledger.models.ledger import TransactionType
from tests.factories import make_account, make_tx


INCOME = TransactionType.INCOME
EXPENSE = TransactionType.EXPENSE
NOW = datetime(2024, 6, 30, 12, 0)


def history_fixture():
    return [
        make_tx(1, "1000", INCOME, datetime(2024, 1, 5)),
        make_tx(2, "200", EXPENSE, datetime(2024, 2, 10)),
        make_tx(3, "50.25", EXPENSE, datetime(2024, 3, 15)),
        make_tx(4, "300", INCOME, datetime(2024, 4, 20)),
    ]


class TestStartingBalance:

    def test_undoes_every_transaction(self):
        # 500 = start + 1000 - 200 - 50.25 + 300
        assert starting_balance(Decimal("500"), history_fixture()) == Decimal("-549.75")

    def test_no_transactions_means_current_balance(self):
        assert starting_balance(Decimal("42"), []) == Decimal("42")


class TestReconstruction:

    def test_points_follow_each_transaction(self):
        points = reconstruct_balance_history(Decimal("500"), history_fixture(), now=NOW)

        assert [p.balance for p in points] == [
            Decimal("450.25"),
            Decimal("250.25"),
            Decimal("200.00"),
            Decimal("500.00"),
            Decimal("500"),
        ]
        assert [p.transaction_id for p in points] == [1, 2, 3, 4, None]
        assert points[0].date == datetime(2024, 1, 5)
        assert points[-1].date == NOW

    def test_unsorted_input_is_sorted_by_date(self):
        shuffled = list(reversed(history_fixture()))
        points = reconstruct_balance_history(Decimal("500"), shuffled, now=NOW)
        assert [p.transaction_id for p in points] == [1, 2, 3, 4, None]

    def test_zero_transactions_yields_single_now_point(self):
        points = reconstruct_balance_history(Decimal("123.45"), [], now=NOW)
        assert len(points) == 1
        assert points[0].date == NOW
        assert points[0].balance == Decimal("123.45")
        assert points[0].transaction_id is None

    def test_window_keeps_last_points(self):
        transactions = [
            make_tx(i, "10", INCOME, datetime(2024, 1, i))
            for i in range(1, 21)
        ]
        points = reconstruct_balance_history(Decimal("200"), transactions, now=NOW)

        assert len(points) == 12
        assert points[0].transaction_id == 10
        assert points[-1].balance == Decimal("200")

    def test_custom_window(self):
        points = reconstruct_balance_history(
            Decimal("500"), history_fixture(), now=NOW, window=2
        )
        assert [p.transaction_id for p in points] == [4, None]

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            reconstruct_balance_history(Decimal("500"), [], window=0)

    def test_replay_lands_on_current_balance_for_every_order(self):
        base = history_fixture()
        for order in permutations(base):
            points = reconstruct_balance_history(
                Decimal("500"), list(order), now=NOW, window=100
            )
            start = starting_balance(Decimal("500"), order)
            replayed = start
            for tx in sorted(order, key=lambda t: t.transaction_date):
                replayed += tx.signed_amount
            assert replayed == Decimal("500")
            assert points[-2].balance == points[-1].balance == Decimal("500")

    def test_same_timestamp_keeps_input_order(self):
        when = datetime(2024, 5, 1)
        first = make_tx(7, "10", INCOME, when)
        second = make_tx(3, "5", EXPENSE, when)

        points = reconstruct_balance_history(Decimal("100"), [first, second], now=NOW)
        assert [p.transaction_id for p in points] == [7, 3, None]

        points = reconstruct_balance_history(Decimal("100"), [second, first], now=NOW)
        assert [p.transaction_id for p in points] == [3, 7, None]

    def test_is_pure(self):
        transactions = history_fixture()
        snapshot = list(transactions)
        first = reconstruct_balance_history(Decimal("500"), transactions, now=NOW)
        second = reconstruct_balance_history(Decimal("500"), transactions, now=NOW)
        assert first == second
        assert transactions == snapshot


class TestAccountHistory:

    def test_ignores_other_accounts(self):
        account = make_account(1, "100")
        transactions = [
            make_tx(1, "40", INCOME, datetime(2024, 1, 1), account_id=1),
            make_tx(2, "999", EXPENSE, datetime(2024, 1, 2), account_id=2),
        ]
        points = account_balance_history(account, transactions, now=NOW)

        assert [p.transaction_id for p in points] == [1, None]
        assert points[0].balance == Decimal("100")
