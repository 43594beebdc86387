"""
Audit Models for TimeLedger

Every transfer session leaves a trail: when it was opened, what was
saved (or refused), and every exchange-rate refresh that moved the
numbers under the user's feet.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transfer sessions
    TRANSFER_OPENED = "transfer_opened"
    TRANSFER_REHYDRATED = "transfer_rehydrated"
    TRANSFER_CANCELLED = "transfer_cancelled"

    # Persistence
    TRANSFER_SAVED = "transfer_saved"
    TRANSFER_SAVE_REJECTED = "transfer_save_rejected"
    SAVE_FAILED = "save_failed"

    # Exchange rates
    RATES_UPDATED = "rates_updated"
    RATE_UPDATE_FAILED = "rate_update_failed"

    # System events
    SYSTEM_ERROR = "system_error"


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
        description="Type of entity (e.g., 'transfer', 'rates')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - one transfer form session
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one transfer session)"
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

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transfer_opened(correlation_id, source_account_id)
        event = AuditEventBuilder.transfer_saved(record_id, ..., correlation_id)
    """

    @staticmethod
    def transfer_opened(
        correlation_id: UUID,
        source_account_id: Optional[int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_OPENED,
            entity_type="transfer",
            correlation_id=correlation_id,
            description="Transfer form opened",
            details={
                "source_account_id": source_account_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def transfer_rehydrated(
        record_id: UUID,
        manual_override: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_REHYDRATED,
            entity_type="transfer",
            entity_id=record_id,
            correlation_id=correlation_id,
            description="Stored transfer reopened for editing",
            details={
                "manual_override": manual_override,
            },
            is_user_action=True,
        )

    @staticmethod
    def transfer_cancelled(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_CANCELLED,
            entity_type="transfer",
            correlation_id=correlation_id,
            description="Transfer form discarded without saving",
            is_user_action=True,
        )

    @staticmethod
    def transfer_saved(
        record_id: UUID,
        source_amount: Decimal,
        source_currency: str,
        target_amount: Decimal,
        target_currency: str,
        fee: Decimal,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_SAVED,
            entity_type="transfer",
            entity_id=record_id,
            correlation_id=correlation_id,
            description=(
                f"Transfer saved: {source_amount} {source_currency}"
                f" -> {target_amount} {target_currency}"
            ),
            details={
                "source_amount": str(source_amount),
                "source_currency": source_currency,
                "target_amount": str(target_amount),
                "target_currency": target_currency,
                "fee": str(fee),
            },
            is_user_action=True,
        )

    @staticmethod
    def transfer_save_rejected(
        issues: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_SAVE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transfer",
            correlation_id=correlation_id,
            description=f"Transfer not saved: {len(issues)} blocking issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transfer",
            correlation_id=correlation_id,
            description="Ledger rejected the transfer",
            error_message=error_message,
        )

    @staticmethod
    def rates_updated(
        base_currency: str,
        updated_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_UPDATED,
            entity_type="rates",
            description=f"Exchange rates refreshed: {updated_count} currencies",
            details={
                "base_currency": base_currency,
                "updated_count": updated_count,
            },
        )

    @staticmethod
    def rate_update_failed(
        base_currency: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_UPDATE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="rates",
            description="Exchange rate refresh failed; keeping last known rates",
            error_message=error_message,
            details={
                "base_currency": base_currency,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
