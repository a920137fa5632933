"""
Audit Logger

DESIGN DECISION: Every money movement step is logged.
This provides:
1. Traceability of which writes actually reached the store
2. The ids needed to reconcile a partially-applied transfer
3. Debugging capability

The audit logger:
- Writes structured (JSON) events through structlog
- Keeps the events of the current process in memory for inspection
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Every event goes to the structured log. The most recent events are
    also retained in memory (bounded) so a caller can show the trail of
    a workflow it just ran.
    """

    def __init__(self, max_retained_events: int = 500):
        self._logger = structlog.get_logger("finance_ledger.audit")
        self._events: list[AuditEvent] = []
        self._max_retained_events = max_retained_events

    @property
    def events(self) -> list[AuditEvent]:
        """Retained events, oldest first."""
        return list(self._events)

    def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        """Retained events belonging to one workflow."""
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._events.append(event)
        if len(self._events) > self._max_retained_events:
            del self._events[0]

    async def log_snapshot_loaded(
        self,
        user_id: int,
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_loaded(
            user_id=user_id,
            counts=counts,
            correlation_id=correlation_id,
        ))

    async def log_integrity_issues(
        self,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.integrity_issues_found(
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_transfer_started(
        self,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log the start of a transfer, before any write."""
        await self.log(AuditEventBuilder.transfer_started(
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transfer_leg(
        self,
        leg: str,
        transaction_id: int,
        account_id: int,
        correlation_id: UUID,
    ) -> None:
        """Log one persisted leg of a transfer."""
        await self.log(AuditEventBuilder.transfer_leg_recorded(
            leg=leg,
            transaction_id=transaction_id,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    async def log_transfer_completed(
        self,
        debit_transaction_id: int,
        credit_transaction_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transfer_completed(
            debit_transaction_id=debit_transaction_id,
            credit_transaction_id=credit_transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_transfer_failed(
        self,
        from_account_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transfer_failed(
            from_account_id=from_account_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transfer_partially_applied(
        self,
        succeeded_transaction_id: int,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a transfer whose debit landed but whose credit did not."""
        await self.log(AuditEventBuilder.transfer_partially_applied(
            succeeded_transaction_id=succeeded_transaction_id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
            amount=amount,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_debt_payment_applied(
        self,
        debt_id: int,
        amount: Decimal,
        remaining_balance: Decimal,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.debt_payment_applied(
            debt_id=debt_id,
            amount=amount,
            remaining_balance=remaining_balance,
            correlation_id=correlation_id,
        ))

    async def log_debt_payment_failed(
        self,
        debt_id: int,
        amount: Decimal,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.debt_payment_failed(
            debt_id=debt_id,
            amount=amount,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_rejected(
        self,
        operation: str,
        reason: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation refused before anything reached the store."""
        await self.log(AuditEventBuilder.operation_rejected(
            operation=operation,
            reason=reason,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new workflow (e.g., a transfer).
    Pass it through all subsequent operations.
    """
    return uuid4()
