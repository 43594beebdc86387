"""
Storage Services Package

Provides abstract interfaces and in-memory implementations for the
transfer ledger and the audit trail.
"""

from timeledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerCommitInterface,
    NotFoundError,
    StorageError,
)
from timeledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedger,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerCommitInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedger",
]
