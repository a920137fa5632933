"""
Tests for the REST store client.

The HTTP session is a mock; no request leaves the process.
"""

import json
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests
from tenacity import wait_none

from finance_ledger.models.ledger import (
    Account,
    CategoryDraft,
    TransactionDraft,
    TransactionType,
)
from finance_ledger.services.store import (
    NotFoundError,
    RestEntityStore,
    StoreConnectionError,
    StoreError,
    StoreErrorKind,
)


def fake_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.text = json.dumps(body) if body is not None else ""
    response.json.side_effect = lambda **kw: json.loads(response.text, **kw)
    return response


def make_store(store_settings, *responses):
    session = MagicMock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return RestEntityStore(store_settings, session=session), session


def sent_payload(session, call_index=-1):
    return json.loads(session.request.call_args_list[call_index].kwargs["data"])


TRANSACTION_ROW = {
    "transactionId": 12,
    "accountId": {"accountId": 3, "accountName": "Checking"},
    "userId": {"userId": 1},
    "amount": 45.5,
    "description": "Weekly shop",
    "categoryId": {"categoryId": 2, "categoryName": "Groceries"},
    "debtId": None,
    "transactionDate": "2024-03-14",
    "type": "expense",
    "recurrence": None,
}


class TestWireMapping:

    @pytest.mark.asyncio
    async def test_accounts(self, store_settings):
        store, session = make_store(store_settings, fake_response(body=[
            {"accountId": 3, "userId": {"userId": 1}, "accountName": "Checking", "accountBalance": 1250.75},
        ]))

        accounts = await store.list_accounts(1)

        assert accounts == [Account(id=3, user_id=1, name="Checking", balance=Decimal("1250.75"))]
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "http://store.test/accounts/user/1"

    @pytest.mark.asyncio
    async def test_transaction_with_nested_references(self, store_settings):
        store, _ = make_store(store_settings, fake_response(body=[TRANSACTION_ROW]))

        [transaction] = await store.list_transactions(user_id=1)

        assert transaction.id == 12
        assert transaction.account_id == 3
        assert transaction.category_id == 2
        assert transaction.category_name == "Groceries"
        assert transaction.amount == Decimal("45.5")
        assert transaction.type == TransactionType.EXPENSE
        assert transaction.transaction_date == datetime(2024, 3, 14)

    @pytest.mark.asyncio
    async def test_debt_keeps_store_derived_fields(self, store_settings):
        store, _ = make_store(store_settings, fake_response(body={
            "debtId": 4,
            "userId": {"userId": 1},
            "debtName": "Car loan",
            "totalOwed": 500,
            "amountPaid": 200,
            "monthlyPayment": 50,
            "remainingBalance": 300,
            "paymentProgress": 40.0,
        }))

        debt = await store.get_debt(4)

        assert debt.remaining_balance == Decimal("300")
        assert debt.payment_progress == pytest.approx(40.0)
        assert not debt.is_paid_off

    @pytest.mark.asyncio
    async def test_transaction_draft_payload(self, store_settings):
        store, session = make_store(store_settings, fake_response(body=TRANSACTION_ROW))
        draft = TransactionDraft(
            user_id=1,
            account_id=3,
            category_id=2,
            amount=Decimal("45.50"),
            type=TransactionType.EXPENSE,
            description="Weekly shop",
        )

        await store.create_transaction(draft)

        assert session.request.call_args.args == ("POST", "http://store.test/transactions")
        assert sent_payload(session) == {
            "accountId": 3,
            "userId": 1,
            "amount": "45.50",
            "description": "Weekly shop",
            "categoryId": 2,
            "type": "expense",
        }

    @pytest.mark.asyncio
    async def test_debt_payment_payload(self, store_settings):
        store, session = make_store(store_settings, fake_response(body={
            "debtId": 4,
            "userId": {"userId": 1},
            "debtName": "Car loan",
            "totalOwed": 500,
            "amountPaid": 250,
            "monthlyPayment": 50,
        }))

        debt = await store.apply_debt_payment(4, Decimal("50"))

        assert session.request.call_args.args == ("POST", "http://store.test/debts/4/payment")
        assert sent_payload(session) == {"paymentAmount": "50"}
        assert debt.remaining_balance == Decimal("250")

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self, store_settings):
        store, session = make_store(store_settings, fake_response(status_code=204))

        assert await store.delete_transaction(12) is None
        assert session.request.call_args.args == ("DELETE", "http://store.test/transactions/12")


class TestTransactionFilters:

    @pytest.mark.asyncio
    async def test_account_endpoint_is_preferred(self, store_settings):
        other_category = dict(TRANSACTION_ROW, transactionId=13, categoryId={"categoryId": 9})
        store, session = make_store(
            store_settings, fake_response(body=[TRANSACTION_ROW, other_category])
        )

        transactions = await store.list_transactions(account_id=3, category_id=2)

        assert session.request.call_args.args[1] == "http://store.test/transactions/account/3"
        assert [t.id for t in transactions] == [12]

    @pytest.mark.asyncio
    async def test_empty_filtered_list_is_not_an_error(self, store_settings):
        store, _ = make_store(store_settings, fake_response(status_code=404, body={"error": "none"}))

        assert await store.list_transactions(category_id=2) == []


class TestErrors:

    @pytest.mark.asyncio
    async def test_missing_entity(self, store_settings):
        store, _ = make_store(store_settings, fake_response(status_code=404, body={"error": "nope"}))

        with pytest.raises(NotFoundError) as exc_info:
            await store.get_account(99)

        assert exc_info.value.kind == StoreErrorKind.NOT_FOUND
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_rejected_write_is_validation(self, store_settings):
        store, _ = make_store(store_settings, fake_response(status_code=400, body={"error": "bad"}))

        with pytest.raises(StoreError) as exc_info:
            await store.create_category(CategoryDraft(name="Rent"))

        assert exc_info.value.kind == StoreErrorKind.VALIDATION
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_conflict(self, store_settings):
        store, _ = make_store(store_settings, fake_response(status_code=409, body={"error": "in use"}))

        with pytest.raises(StoreError) as exc_info:
            await store.delete_account(3)

        assert exc_info.value.kind == StoreErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_server_error(self, store_settings):
        store, _ = make_store(store_settings, fake_response(status_code=500, body={"error": "boom"}))

        with pytest.raises(StoreError) as exc_info:
            await store.list_categories()

        assert exc_info.value.kind == StoreErrorKind.SERVER

    @pytest.mark.asyncio
    async def test_invalid_json(self, store_settings):
        response = fake_response(body=[])
        response.text = "<html>"
        store, _ = make_store(store_settings, response)

        with pytest.raises(StoreError) as exc_info:
            await store.list_categories()

        assert exc_info.value.kind == StoreErrorKind.SERVER

    @pytest.mark.asyncio
    async def test_reads_are_retried_on_connection_errors(self, store_settings, monkeypatch):
        monkeypatch.setattr(RestEntityStore._get.retry, "wait", wait_none())
        store, session = make_store(
            store_settings,
            requests.exceptions.ConnectionError("refused"),
            requests.exceptions.Timeout("slow"),
            fake_response(body=[{"categoryId": 1, "categoryName": "Transfer"}]),
        )

        categories = await store.list_categories()

        assert [c.name for c in categories] == ["Transfer"]
        assert session.request.call_count == 3

    @pytest.mark.asyncio
    async def test_reads_give_up_after_three_attempts(self, store_settings, monkeypatch):
        monkeypatch.setattr(RestEntityStore._get.retry, "wait", wait_none())
        store, session = make_store(
            store_settings,
            *[requests.exceptions.ConnectionError("refused")] * 3,
        )

        with pytest.raises(StoreConnectionError) as exc_info:
            await store.list_accounts(1)

        assert exc_info.value.kind == StoreErrorKind.TRANSPORT
        assert session.request.call_count == 3

    @pytest.mark.asyncio
    async def test_writes_are_not_retried(self, store_settings):
        store, session = make_store(
            store_settings,
            requests.exceptions.ConnectionError("refused"),
        )

        with pytest.raises(StoreConnectionError):
            await store.create_category(CategoryDraft(name="Rent"))

        assert session.request.call_count == 1
