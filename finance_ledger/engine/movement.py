"""
Money-Movement Coordinator

Operations that move money between entities:
1. Transfer - an expense on one account plus an income on another
2. Debt payment - one store-side update of a debt's amount paid

DESIGN DECISION: A transfer is NOT atomic. The store offers no
cross-entity transaction, so the two legs are written one after the
other. If the credit leg fails after the debit leg landed, the caller
gets a PartialTransferFailure naming the persisted debit transaction so
the second leg can be retried or the debit reversed by hand. We never
compensate automatically and never retry on our own.

Preconditions are checked locally, before any write. A rejected
operation never reaches the store.

After any movement the caller must re-read the store before deriving
anything else; nothing returned here describes overall state.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from finance_ledger.audit import AuditLogger, create_correlation_id
from finance_ledger.config import get_settings
from finance_ledger.config.settings import LedgerSettings, StoreSettings
from finance_ledger.models.ledger import (
    Account,
    Debt,
    TransactionDraft,
    TransactionType,
    TransferResult,
)
from finance_ledger.services.store import (
    EntityStoreInterface,
    StoreError,
    StoreErrorKind,
)


logger = structlog.get_logger(__name__)


class InvalidOperationError(Exception):
    """A precondition failed. Nothing was written."""
    pass


class ExcessPaymentError(InvalidOperationError):
    """Payment would push amount paid beyond total owed."""

    def __init__(self, debt_id: int, amount: Decimal, maximum_payment: Decimal):
        self.debt_id = debt_id
        self.amount = amount
        self.maximum_payment = maximum_payment
        super().__init__(
            f"Payment of {amount} on debt {debt_id} exceeds the remaining "
            f"balance. Maximum payment: {maximum_payment}"
        )


class DebtPaidOffError(InvalidOperationError):
    """Debt has nothing left to pay."""

    def __init__(self, debt_id: int):
        self.debt_id = debt_id
        super().__init__(f"Debt {debt_id} is already paid off")


class TransferError(StoreError):
    """The debit leg of a transfer failed. Nothing was written."""
    pass


class PartialTransferFailure(TransferError):
    """
    The debit leg was written but the credit leg failed.

    The source account has been debited and the destination has not
    been credited.
    """

    def __init__(
        self,
        message: str,
        succeeded_transaction_id: int,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        kind: StoreErrorKind = StoreErrorKind.SERVER,
        status_code: Optional[int] = None,
    ):
        self.failed_leg = "credit"
        self.succeeded_transaction_id = succeeded_transaction_id
        self.from_account_id = from_account_id
        self.to_account_id = to_account_id
        self.amount = amount
        super().__init__(message, kind=kind, status_code=status_code)


class DebtPaymentError(StoreError):
    """The store failed to apply a debt payment."""
    pass


CENT = Decimal("0.01")

MoneyInput = Union[Decimal, int, float, str]


def to_money(amount: MoneyInput) -> Decimal:
    """
    Convert a caller-supplied amount to an exact Decimal in whole cents.

    Floats go through str() so 19.99 stays 19.99 rather than its binary
    expansion.

    Raises:
        InvalidOperationError: Not a number, or finer than one cent
    """
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidOperationError(f"Amount is not a number: {amount!r}") from e
    if not value.is_finite():
        raise InvalidOperationError(f"Amount is not a number: {amount!r}")
    if value != value.quantize(CENT):
        raise InvalidOperationError(f"Amount must be in whole cents, got {value}")
    return value.quantize(CENT)


def check_transfer(from_account_id: int, to_account_id: int, amount: MoneyInput) -> Decimal:
    """
    Local transfer preconditions. Returns the amount as money.

    Raises:
        InvalidOperationError: Same account, non-positive or sub-cent amount
    """
    if from_account_id == to_account_id:
        raise InvalidOperationError("Cannot transfer to the same account")
    value = to_money(amount)
    if value <= 0:
        raise InvalidOperationError("Transfer amount must be greater than 0")
    return value


def _validation_summary(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )


class MoneyMovementCoordinator:
    """
    Executes transfers and debt payments against the store.

    GUARANTEES:
    - Writes within one operation are issued in a fixed order
    - Every failure reaches the caller typed by kind
    - Every step is audited under one correlation id
    """

    def __init__(
        self,
        store: EntityStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        ledger_settings: Optional[LedgerSettings] = None,
        store_settings: Optional[StoreSettings] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = ledger_settings or get_settings().ledger
        self._user_id = (store_settings or get_settings().store).user_id

    @staticmethod
    def _describe(prefix: str, account: Account, note: Optional[str]) -> str:
        description = f"{prefix} {account.name}"
        if note and note.strip():
            description = f"{description} - {note.strip()}"
        return description

    async def _reject(
        self,
        operation: str,
        reason: str,
        entity_type: str,
        entity_id: int,
        correlation_id: UUID,
    ) -> None:
        await self._audit_logger.log_rejected(
            operation=operation,
            reason=reason[:300],
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )

    async def transfer(
        self,
        from_account: Account,
        to_account: Account,
        amount: MoneyInput,
        description: Optional[str] = None,
    ) -> TransferResult:
        """
        Move `amount` from one account to another.

        Returns:
            Both persisted legs

        Raises:
            InvalidOperationError: Same account, non-positive or sub-cent
                amount, or a note too long to store
            TransferError: The debit leg failed (nothing written)
            PartialTransferFailure: The credit leg failed after the debit landed
        """
        correlation_id = create_correlation_id()

        try:
            amount = check_transfer(from_account.id, to_account.id, amount)
            debit_draft = TransactionDraft(
                user_id=self._user_id,
                account_id=from_account.id,
                category_id=self._settings.transfer_category_id,
                amount=amount,
                type=TransactionType.EXPENSE,
                description=self._describe("Transfer to", to_account, description),
            )
            credit_draft = TransactionDraft(
                user_id=self._user_id,
                account_id=to_account.id,
                category_id=self._settings.transfer_category_id,
                amount=amount,
                type=TransactionType.INCOME,
                description=self._describe("Transfer from", from_account, description),
            )
        except InvalidOperationError as e:
            await self._reject("transfer", str(e), "account", from_account.id, correlation_id)
            raise
        except ValidationError as e:
            error = InvalidOperationError(f"Invalid transfer: {_validation_summary(e)}")
            await self._reject("transfer", str(error), "account", from_account.id, correlation_id)
            raise error from e

        await self._audit_logger.log_transfer_started(
            from_account_id=from_account.id,
            to_account_id=to_account.id,
            amount=amount,
            correlation_id=correlation_id,
        )

        try:
            debit = await self._store.create_transaction(debit_draft)
        except StoreError as e:
            await self._audit_logger.log_transfer_failed(
                from_account_id=from_account.id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise TransferError(
                f"Transfer failed, nothing was written: {e}",
                kind=e.kind,
                status_code=e.status_code,
            ) from e

        await self._audit_logger.log_transfer_leg(
            leg="debit",
            transaction_id=debit.id,
            account_id=from_account.id,
            correlation_id=correlation_id,
        )

        try:
            credit = await self._store.create_transaction(credit_draft)
        except StoreError as e:
            await self._audit_logger.log_transfer_partially_applied(
                succeeded_transaction_id=debit.id,
                from_account_id=from_account.id,
                to_account_id=to_account.id,
                amount=amount,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise PartialTransferFailure(
                f"Account {from_account.id} was debited (transaction {debit.id}) "
                f"but crediting account {to_account.id} failed: {e}",
                succeeded_transaction_id=debit.id,
                from_account_id=from_account.id,
                to_account_id=to_account.id,
                amount=amount,
                kind=e.kind,
                status_code=e.status_code,
            ) from e

        await self._audit_logger.log_transfer_leg(
            leg="credit",
            transaction_id=credit.id,
            account_id=to_account.id,
            correlation_id=correlation_id,
        )
        await self._audit_logger.log_transfer_completed(
            debit_transaction_id=debit.id,
            credit_transaction_id=credit.id,
            correlation_id=correlation_id,
        )
        logger.info(
            "transfer_completed",
            from_account_id=from_account.id,
            to_account_id=to_account.id,
            amount=str(amount),
        )

        return TransferResult(debit=debit, credit=credit)

    async def make_debt_payment(self, debt: Debt, amount: MoneyInput) -> Debt:
        """
        Pay `amount` towards `debt`.

        Overpayment is rejected rather than truncated.

        Returns:
            The debt exactly as the store returned it

        Raises:
            InvalidOperationError: Non-positive or sub-cent amount
            DebtPaidOffError: Nothing left to pay
            ExcessPaymentError: Amount exceeds the remaining balance
            DebtPaymentError: The store failed to apply the payment
        """
        correlation_id = create_correlation_id()

        try:
            amount = to_money(amount)
            if amount <= 0:
                raise InvalidOperationError("Payment amount must be greater than 0")
            if debt.is_paid_off:
                raise DebtPaidOffError(debt.id)
            if debt.amount_paid + amount > debt.total_owed:
                raise ExcessPaymentError(
                    debt_id=debt.id,
                    amount=amount,
                    maximum_payment=debt.total_owed - debt.amount_paid,
                )
        except InvalidOperationError as e:
            await self._reject("debt_payment", str(e), "debt", debt.id, correlation_id)
            raise

        try:
            updated = await self._store.apply_debt_payment(debt.id, amount)
        except StoreError as e:
            await self._audit_logger.log_debt_payment_failed(
                debt_id=debt.id,
                amount=amount,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise DebtPaymentError(
                f"Payment on debt {debt.id} failed: {e}",
                kind=e.kind,
                status_code=e.status_code,
            ) from e

        await self._audit_logger.log_debt_payment_applied(
            debt_id=updated.id,
            amount=amount,
            remaining_balance=updated.remaining_balance,
            correlation_id=correlation_id,
        )
        return updated
