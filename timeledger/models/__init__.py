"""
Data Models Package

This package contains all Pydantic models used by TimeLedger.
All data flowing through the transfer engine must conform to these schemas.
"""

from timeledger.models.transfer import (
    Account,
    AccountCategory,
    AnchorMode,
    FocusField,
    Leg,
    LedgerEntry,
    LegSide,
    TransferCommit,
    TransferRecord,
    TransferState,
)
from timeledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transfer models
    "Account",
    "AccountCategory",
    "AnchorMode",
    "FocusField",
    "Leg",
    "LedgerEntry",
    "LegSide",
    "TransferCommit",
    "TransferRecord",
    "TransferState",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
