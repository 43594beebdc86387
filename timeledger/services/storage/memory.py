"""
In-Memory Storage

Process-local implementations of the ledger and audit storage interfaces.
Used by the test suite and the demo screen; nothing survives a restart.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from timeledger.audit.log_config import get_logger
from timeledger.models.audit import AuditEvent
from timeledger.models.transfer import TransferCommit, TransferRecord
from timeledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerCommitInterface,
    NotFoundError,
)


class InMemoryLedger(LedgerCommitInterface):
    """
    Keeps transfer records in a dict, in insertion order.

    Each transfer is stored as one record holding two ledger entries:
    the outgoing amount on the source account and the incoming amount
    on the target account.
    """

    def __init__(self):
        self._records: dict[UUID, TransferRecord] = {}
        self._logger = get_logger(__name__)

    def add_record(self, record: TransferRecord) -> None:
        """Load an existing record as-is (e.g. imported history)."""
        if record.record_id in self._records:
            raise DuplicateError(f"Transfer {record.record_id} already stored")
        self._records[record.record_id] = record

    def commit_transfer(
        self,
        commit: TransferCommit,
        replaces: Optional[UUID] = None,
    ) -> TransferRecord:
        if replaces is not None:
            if replaces not in self._records:
                raise NotFoundError(f"Transfer {replaces} not found")
            del self._records[replaces]

        record = TransferRecord.from_commit(commit)
        self._records[record.record_id] = record

        self._logger.info(
            "transfer_committed",
            record_id=str(record.record_id),
            replaces=str(replaces) if replaces else None,
            source_account_id=commit.source_account_id,
            target_account_id=commit.target_account_id,
        )
        return record

    def get_transfer(self, record_id: UUID) -> Optional[TransferRecord]:
        return self._records.get(record_id)

    def delete_transfer(self, record_id: UUID) -> bool:
        return self._records.pop(record_id, None) is not None

    def list_transfers(
        self,
        account_id: Optional[int] = None,
    ) -> list[TransferRecord]:
        records = list(self._records.values())
        if account_id is not None:
            records = [
                r for r in records
                if account_id in (r.source_account_id, r.target_account_id)
            ]
        return records

    def account_balance_delta(self, account_id: int) -> Decimal:
        """Net effect of all stored transfers on one account."""
        return sum(
            (
                entry.amount
                for record in self._records.values()
                for entry in record.entries
                if entry.account_id == account_id
            ),
            Decimal("0"),
        )


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit trail held in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
