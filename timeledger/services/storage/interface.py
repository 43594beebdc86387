"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Keep the transfer engine free of any persistence concerns
2. Use in-memory storage for testing and for the demo screen
3. Plug in a real database later without touching the resolver

The ledger side is deliberately narrow: the transfer form only ever
commits one finished transfer, reads one back for editing, or
removes one.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from timeledger.models.audit import AuditEvent
from timeledger.models.transfer import TransferCommit, TransferRecord


class LedgerCommitInterface(ABC):
    """
    Abstract interface for committing transfers to the ledger.

    Any ledger implementation must implement these methods.
    """

    @abstractmethod
    def commit_transfer(
        self,
        commit: TransferCommit,
        replaces: Optional[UUID] = None,
    ) -> TransferRecord:
        """
        Persist a finished transfer.

        Args:
            commit: The resolved pair of amounts with accounts, fee and note
            replaces: ID of an existing record this commit supersedes
                      (editing a stored transfer)

        Returns:
            The stored record, including its ledger entries

        Raises:
            StorageError: If the write fails
            NotFoundError: If `replaces` does not exist
        """
        pass

    @abstractmethod
    def get_transfer(self, record_id: UUID) -> Optional[TransferRecord]:
        """
        Retrieve a stored transfer.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    def delete_transfer(self, record_id: UUID) -> bool:
        """
        Delete a stored transfer and its entries.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    def list_transfers(
        self,
        account_id: Optional[int] = None,
    ) -> list[TransferRecord]:
        """
        List stored transfers, optionally those touching one account.

        Returns:
            Matching records, oldest first
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one transfer session).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
