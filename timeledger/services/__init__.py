"""Services package."""

from timeledger.services.rates import (
    ConversionPort,
    ExchangeRateTable,
    RateRefreshError,
)
from timeledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedger,
    LedgerCommitInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Rate services
    "ConversionPort",
    "ExchangeRateTable",
    "RateRefreshError",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedger",
    "LedgerCommitInterface",
    "NotFoundError",
    "StorageError",
]
