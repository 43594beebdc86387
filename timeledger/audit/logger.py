"""
Audit Logger

DESIGN DECISION: Every transfer session is audited.
This provides:
1. Traceability of what was saved, refused or cancelled
2. A record of which exchange rates were in force
3. Debugging capability when a user disputes a converted amount

The audit logger:
- Runs synchronously, like the rest of the transfer engine
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from timeledger.audit.log_config import get_logger
from timeledger.models.audit import AuditEvent, AuditEventBuilder
from timeledger.services.storage.interface import AuditStorageInterface


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = get_logger("timeledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_transfer_opened(
        self,
        correlation_id: UUID,
        source_account_id: Optional[int],
    ) -> None:
        """Log a fresh transfer form."""
        self.log(AuditEventBuilder.transfer_opened(
            correlation_id=correlation_id,
            source_account_id=source_account_id,
        ))

    def log_transfer_rehydrated(
        self,
        record_id: UUID,
        manual_override: bool,
        correlation_id: UUID,
    ) -> None:
        """Log a stored transfer reopened for editing."""
        self.log(AuditEventBuilder.transfer_rehydrated(
            record_id=record_id,
            manual_override=manual_override,
            correlation_id=correlation_id,
        ))

    def log_transfer_cancelled(self, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.transfer_cancelled(correlation_id))

    def log_transfer_saved(
        self,
        record_id: UUID,
        source_amount: Decimal,
        source_currency: str,
        target_amount: Decimal,
        target_currency: str,
        fee: Decimal,
        correlation_id: UUID,
    ) -> None:
        """Log a committed transfer."""
        self.log(AuditEventBuilder.transfer_saved(
            record_id=record_id,
            source_amount=source_amount,
            source_currency=source_currency,
            target_amount=target_amount,
            target_currency=target_currency,
            fee=fee,
            correlation_id=correlation_id,
        ))

    def log_save_rejected(
        self,
        issues: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log a save attempt blocked by the save-time guard."""
        self.log(AuditEventBuilder.transfer_save_rejected(
            issues=issues,
            correlation_id=correlation_id,
        ))

    def log_save_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a ledger write failure."""
        self.log(AuditEventBuilder.save_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    def log_rates_updated(
        self,
        base_currency: str,
        updated_count: int,
    ) -> None:
        self.log(AuditEventBuilder.rates_updated(
            base_currency=base_currency,
            updated_count=updated_count,
        ))

    def log_rate_update_failed(
        self,
        base_currency: str,
        error_message: str,
    ) -> None:
        self.log(AuditEventBuilder.rate_update_failed(
            base_currency=base_currency,
            error_message=error_message,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this when a transfer form opens.
    Pass it through all subsequent operations.
    """
    return uuid4()
