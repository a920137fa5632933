"""
Audit Models for Finance Ledger

Every money movement is logged step by step for audit purposes.
This provides:
1. Traceability of which legs of a transfer actually reached the store
2. Enough information to reconcile a partially-applied transfer by hand
3. Debugging information when the store misbehaves

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of a money movement has its own event type.
    """
    # Snapshot loading
    SNAPSHOT_LOADED = "snapshot_loaded"
    INTEGRITY_ISSUES_FOUND = "integrity_issues_found"

    # Transfers
    TRANSFER_STARTED = "transfer_started"
    TRANSFER_LEG_RECORDED = "transfer_leg_recorded"
    TRANSFER_COMPLETED = "transfer_completed"
    TRANSFER_FAILED = "transfer_failed"
    TRANSFER_PARTIALLY_APPLIED = "transfer_partially_applied"

    # Debt payments
    DEBT_PAYMENT_APPLIED = "debt_payment_applied"
    DEBT_PAYMENT_FAILED = "debt_payment_failed"

    # Rejected before any write
    OPERATION_REJECTED = "operation_rejected"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'debt', 'transaction')"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="Store id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., both legs of one transfer)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict[str, Any]:
        """Flatten the event for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Factory methods for the events we emit.

    Keeping construction here means descriptions and detail keys stay
    consistent no matter which component logs the event.
    """

    @staticmethod
    def snapshot_loaded(
        user_id: int,
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Loaded ledger snapshot",
            details=counts,
        )

    @staticmethod
    def integrity_issues_found(
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTEGRITY_ISSUES_FOUND,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Snapshot has {len(issues)} data-integrity issue(s)",
            details={"issues": issues},
        )

    @staticmethod
    def transfer_started(
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_STARTED,
            entity_type="account",
            entity_id=from_account_id,
            correlation_id=correlation_id,
            description=f"Transfer of {amount} from account {from_account_id} to {to_account_id}",
            details={
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
                "amount": str(amount),
            },
        )

    @staticmethod
    def transfer_leg_recorded(
        leg: str,
        transaction_id: int,
        account_id: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_LEG_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transfer {leg} leg recorded on account {account_id}",
            details={"leg": leg, "account_id": account_id},
        )

    @staticmethod
    def transfer_completed(
        debit_transaction_id: int,
        credit_transaction_id: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_COMPLETED,
            correlation_id=correlation_id,
            description="Transfer completed",
            details={
                "debit_transaction_id": debit_transaction_id,
                "credit_transaction_id": credit_transaction_id,
            },
        )

    @staticmethod
    def transfer_failed(
        from_account_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="account",
            entity_id=from_account_id,
            correlation_id=correlation_id,
            description="Transfer failed before anything was written",
            error_message=error_message,
        )

    @staticmethod
    def transfer_partially_applied(
        succeeded_transaction_id: int,
        from_account_id: int,
        to_account_id: int,
        amount: Decimal,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_PARTIALLY_APPLIED,
            severity=AuditSeverity.CRITICAL,
            entity_type="transaction",
            entity_id=succeeded_transaction_id,
            correlation_id=correlation_id,
            description=(
                f"Account {from_account_id} was debited but account "
                f"{to_account_id} was not credited - manual reconciliation needed"
            ),
            details={
                "failed_leg": "credit",
                "from_account_id": from_account_id,
                "to_account_id": to_account_id,
                "amount": str(amount),
            },
            error_message=error_message,
        )

    @staticmethod
    def debt_payment_applied(
        debt_id: int,
        amount: Decimal,
        remaining_balance: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_PAYMENT_APPLIED,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"Payment of {amount} applied to debt {debt_id}",
            details={
                "amount": str(amount),
                "remaining_balance": str(remaining_balance),
            },
        )

    @staticmethod
    def debt_payment_failed(
        debt_id: int,
        amount: Decimal,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_PAYMENT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="debt",
            entity_id=debt_id,
            correlation_id=correlation_id,
            description=f"Payment of {amount} on debt {debt_id} failed at the store",
            details={"amount": str(amount)},
            error_message=error_message,
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        reason: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected: {reason}",
            details={"operation": operation},
            error_message=reason,
        )
