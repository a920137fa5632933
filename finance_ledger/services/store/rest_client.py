"""
REST Store Implementation

Talks to the finance backend's REST API:
- JSON bodies with camelCase field names
- related entities nested as objects ({"accountId": {"accountId": 3, ...}})
- numeric ids, ISO date strings

TRADEOFFS:
- requests is blocking, so every call runs in a worker thread via
  asyncio.to_thread and the engine stays cooperative
- Only reads are retried. A write that timed out may still have been
  applied by the backend, so retrying it could duplicate money movements.

The implementation follows the abstract interface, so the engine never
sees a URL, a status code, or a camelCase key.
"""

import asyncio
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import requests
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_ledger.config import get_settings
from finance_ledger.config.settings import StoreSettings
from finance_ledger.models.ledger import (
    Account,
    AccountDraft,
    Category,
    CategoryDraft,
    Debt,
    DebtDraft,
    Transaction,
    TransactionDraft,
)
from finance_ledger.services.store.interface import (
    EntityStoreInterface,
    NotFoundError,
    StoreConnectionError,
    StoreError,
    StoreErrorKind,
)


logger = structlog.get_logger(__name__)


def _status_to_kind(status_code: int) -> StoreErrorKind:
    if status_code == 404:
        return StoreErrorKind.NOT_FOUND
    if status_code in (400, 422):
        return StoreErrorKind.VALIDATION
    if status_code == 409:
        return StoreErrorKind.CONFLICT
    return StoreErrorKind.SERVER


def _ref_id(value: Any, key: str) -> Optional[int]:
    """Read an id that may be nested ({"userId": {"userId": 1}}) or flat."""
    if value is None:
        return None
    if isinstance(value, dict):
        return value.get(key)
    return int(value)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def _money(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class RestEntityStore(EntityStoreInterface):
    """
    Entity store backed by the REST API.

    Wire payloads are translated to and from our models here and
    nowhere else.
    """

    def __init__(
        self,
        settings: Optional[StoreSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._settings = settings or get_settings().store
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    # -- Wire mapping ----------------------------------------------------------

    def _account_from_wire(self, data: dict) -> Account:
        return Account(
            id=data["accountId"],
            user_id=_ref_id(data.get("userId"), "userId") or self._settings.user_id,
            name=data["accountName"],
            balance=_money(data.get("accountBalance", 0)),
        )

    def _account_to_wire(self, account: Account) -> dict:
        return {
            "accountId": account.id,
            "userId": {"userId": account.user_id},
            "accountName": account.name,
            "accountBalance": account.balance,
        }

    def _category_from_wire(self, data: dict) -> Category:
        return Category(id=data["categoryId"], name=data["categoryName"])

    def _category_to_wire(self, category: Category) -> dict:
        return {"categoryId": category.id, "categoryName": category.name}

    def _debt_from_wire(self, data: dict) -> Debt:
        remaining = data.get("remainingBalance")
        progress = data.get("paymentProgress")
        return Debt(
            id=data["debtId"],
            user_id=_ref_id(data.get("userId"), "userId") or self._settings.user_id,
            name=data["debtName"],
            total_owed=_money(data["totalOwed"]),
            amount_paid=_money(data.get("amountPaid") or 0),
            monthly_payment=_money(data["monthlyPayment"]),
            remaining_balance=_money(remaining) if remaining is not None else None,
            payment_progress=float(progress) if progress is not None else None,
        )

    def _debt_to_wire(self, debt: Debt) -> dict:
        return {
            "debtId": debt.id,
            "userId": {"userId": debt.user_id},
            "debtName": debt.name,
            "totalOwed": debt.total_owed,
            "amountPaid": debt.amount_paid,
            "monthlyPayment": debt.monthly_payment,
        }

    def _transaction_from_wire(self, data: dict) -> Transaction:
        category = data.get("categoryId")
        category_id = _ref_id(category, "categoryId")
        category_name = category.get("categoryName") if isinstance(category, dict) else None
        return Transaction(
            id=data["transactionId"],
            user_id=_ref_id(data.get("userId"), "userId") or self._settings.user_id,
            account_id=_ref_id(data["accountId"], "accountId"),
            category_id=category_id,
            category_name=category_name,
            debt_id=_ref_id(data.get("debtId"), "debtId"),
            amount=_money(data["amount"]),
            type=data["type"],
            description=data.get("description") or "",
            transaction_date=_parse_datetime(data["transactionDate"]),
            recurrence=data.get("recurrence") or None,
        )

    def _transaction_to_wire(self, transaction: Transaction) -> dict:
        payload = {
            "transactionId": transaction.id,
            "accountId": {"accountId": transaction.account_id},
            "userId": {"userId": transaction.user_id},
            "amount": transaction.amount,
            "description": transaction.description,
            "categoryId": (
                {"categoryId": transaction.category_id}
                if transaction.category_id is not None else None
            ),
            "debtId": (
                {"debtId": transaction.debt_id}
                if transaction.debt_id is not None else None
            ),
            "transactionDate": transaction.transaction_date.date().isoformat(),
            "type": transaction.type.value,
            "recurrence": transaction.recurrence.value if transaction.recurrence else None,
        }
        return payload

    def _transaction_draft_to_wire(self, draft: TransactionDraft) -> dict:
        payload = {
            "accountId": draft.account_id,
            "userId": draft.user_id,
            "amount": draft.amount,
            "description": draft.description,
            "categoryId": draft.category_id,
            "type": draft.type.value,
        }
        if draft.debt_id is not None:
            payload["debtId"] = draft.debt_id
        if draft.recurrence is not None:
            payload["recurrence"] = draft.recurrence.value
        if draft.transaction_date is not None:
            payload["transactionDate"] = draft.transaction_date.date().isoformat()
        return payload

    # -- HTTP ------------------------------------------------------------------

    def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        """Issue one request and map every failure to a StoreError."""
        url = f"{self._settings.base_url}{path}"
        # The default json encoder cannot handle Decimal
        body = json.dumps(payload, default=str) if payload is not None else None
        logger.debug("store_request", method=method, path=path)
        try:
            response = self._session.request(
                method,
                url,
                data=body,
                timeout=self._settings.timeout_seconds,
            )
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise StoreConnectionError(f"Could not reach store at {url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise StoreError(
                f"{method} {path} failed: {e}",
                kind=StoreErrorKind.TRANSPORT,
            ) from e

        if not response.ok:
            message = f"{method} {path} returned {response.status_code}: {response.text[:200]}"
            if response.status_code == 404:
                raise NotFoundError(message)
            raise StoreError(
                message,
                kind=_status_to_kind(response.status_code),
                status_code=response.status_code,
            )

        if not response.text:
            return None
        try:
            return response.json(parse_float=Decimal)
        except ValueError as e:
            raise StoreError(
                f"{method} {path} returned invalid JSON: {e}",
                kind=StoreErrorKind.SERVER,
                status_code=response.status_code,
            ) from e

    @retry(
        retry=retry_if_exception_type(StoreConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _get(self, path: str) -> Any:
        return self._request("GET", path)

    async def _read(self, path: str) -> Any:
        return await asyncio.to_thread(self._get, path)

    async def _write(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        return await asyncio.to_thread(self._request, method, path, payload)

    async def _read_list_or_empty(self, path: str) -> list:
        """Filtered transaction lists answer 404 when nothing matches."""
        try:
            return await self._read(path) or []
        except NotFoundError:
            return []

    # -- Accounts ------------------------------------------------------------

    async def list_accounts(self, user_id: Optional[int] = None) -> list[Account]:
        path = f"/accounts/user/{user_id}" if user_id is not None else "/accounts"
        rows = await self._read(path) or []
        return [self._account_from_wire(row) for row in rows]

    async def get_account(self, account_id: int) -> Account:
        return self._account_from_wire(await self._read(f"/accounts/{account_id}"))

    async def create_account(self, draft: AccountDraft) -> Account:
        data = await self._write("POST", "/accounts", {
            "userId": draft.user_id,
            "accountName": draft.name,
            "accountBalance": draft.balance,
        })
        return self._account_from_wire(data)

    async def update_account(self, account: Account) -> Account:
        data = await self._write(
            "PUT", f"/accounts/{account.id}", self._account_to_wire(account)
        )
        return self._account_from_wire(data)

    async def delete_account(self, account_id: int) -> None:
        await self._write("DELETE", f"/accounts/{account_id}")

    # -- Categories ----------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        rows = await self._read("/categories") or []
        return [self._category_from_wire(row) for row in rows]

    async def get_category(self, category_id: int) -> Category:
        return self._category_from_wire(await self._read(f"/categories/{category_id}"))

    async def create_category(self, draft: CategoryDraft) -> Category:
        data = await self._write("POST", "/categories", {"categoryName": draft.name})
        return self._category_from_wire(data)

    async def update_category(self, category: Category) -> Category:
        data = await self._write(
            "PUT", f"/categories/{category.id}", self._category_to_wire(category)
        )
        return self._category_from_wire(data)

    async def delete_category(self, category_id: int) -> None:
        await self._write("DELETE", f"/categories/{category_id}")

    # -- Debts ---------------------------------------------------------------

    async def list_debts(self, user_id: Optional[int] = None) -> list[Debt]:
        path = f"/debts/user/{user_id}" if user_id is not None else "/debts"
        rows = await self._read(path) or []
        return [self._debt_from_wire(row) for row in rows]

    async def list_active_debts(self, user_id: int) -> list[Debt]:
        rows = await self._read(f"/debts/user/{user_id}/active") or []
        return [self._debt_from_wire(row) for row in rows]

    async def list_paid_off_debts(self, user_id: int) -> list[Debt]:
        rows = await self._read(f"/debts/user/{user_id}/paid-off") or []
        return [self._debt_from_wire(row) for row in rows]

    async def total_remaining_debt(self, user_id: int) -> Decimal:
        value = await self._read(f"/debts/user/{user_id}/total-remaining")
        return _money(value if value is not None else 0)

    async def get_debt(self, debt_id: int) -> Debt:
        return self._debt_from_wire(await self._read(f"/debts/{debt_id}"))

    async def create_debt(self, draft: DebtDraft) -> Debt:
        data = await self._write("POST", "/debts", {
            "userId": draft.user_id,
            "debtName": draft.name,
            "totalOwed": draft.total_owed,
            "amountPaid": draft.amount_paid,
            "monthlyPayment": draft.monthly_payment,
        })
        return self._debt_from_wire(data)

    async def update_debt(self, debt: Debt) -> Debt:
        data = await self._write("PUT", f"/debts/{debt.id}", self._debt_to_wire(debt))
        return self._debt_from_wire(data)

    async def apply_debt_payment(self, debt_id: int, amount: Decimal) -> Debt:
        data = await self._write(
            "POST", f"/debts/{debt_id}/payment", {"paymentAmount": amount}
        )
        return self._debt_from_wire(data)

    async def delete_debt(self, debt_id: int) -> None:
        await self._write("DELETE", f"/debts/{debt_id}")

    # -- Transactions --------------------------------------------------------

    async def list_transactions(
        self,
        user_id: Optional[int] = None,
        account_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> list[Transaction]:
        # The backend filters on one key per endpoint; the narrowest one is
        # used server-side and the rest are applied here.
        if account_id is not None:
            rows = await self._read_list_or_empty(f"/transactions/account/{account_id}")
        elif category_id is not None:
            rows = await self._read_list_or_empty(f"/transactions/category/{category_id}")
        elif user_id is not None:
            rows = await self._read(f"/transactions/user/{user_id}") or []
        else:
            rows = await self._read("/transactions") or []

        transactions = [self._transaction_from_wire(row) for row in rows]
        return [
            t for t in transactions
            if (user_id is None or t.user_id == user_id)
            and (account_id is None or t.account_id == account_id)
            and (category_id is None or t.category_id == category_id)
        ]

    async def get_transaction(self, transaction_id: int) -> Transaction:
        return self._transaction_from_wire(
            await self._read(f"/transactions/{transaction_id}")
        )

    async def create_transaction(self, draft: TransactionDraft) -> Transaction:
        data = await self._write(
            "POST", "/transactions", self._transaction_draft_to_wire(draft)
        )
        return self._transaction_from_wire(data)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        data = await self._write(
            "PUT",
            f"/transactions/{transaction.id}",
            self._transaction_to_wire(transaction),
        )
        return self._transaction_from_wire(data)

    async def delete_transaction(self, transaction_id: int) -> None:
        await self._write("DELETE", f"/transactions/{transaction_id}")
