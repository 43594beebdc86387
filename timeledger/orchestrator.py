"""
Main Orchestrator for TimeLedger Transfers

This module ties together all the components and defines the
end-to-end flow of one transfer form:

    open (new or existing) -> keypad edits -> save | cancel

plus the out-of-band exchange rate refresh that can land while forms
are open.

DESIGN DECISION: The orchestrator enforces the boundaries:
- The ledger is written exactly once per session, and only with a
  commit the resolver has already checked
- Nothing is written when the user cancels
- Every step is audited

The resolver itself knows nothing about storage or audit; this is the
glue around it.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence
from uuid import UUID

from timeledger.audit import AuditLogger, create_correlation_id, get_logger
from timeledger.audit.log_config import configure_log_level
from timeledger.config import get_settings
from timeledger.models.transfer import Account, LegSide, TransferRecord
from timeledger.services.rates import (
    ConversionPort,
    ExchangeRateTable,
    RateFetcher,
    RateRefreshError,
)
from timeledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedger,
    LedgerCommitInterface,
    NotFoundError,
    StorageError,
)
from timeledger.transfer import InputRouter, TransferNotReadyError, TransferResolver


logger = get_logger(__name__)


class TransferAlreadySavedError(Exception):
    """The session has already been committed to the ledger."""
    pass


class TransferSession:
    """
    One open transfer form.

    Holds the resolver, the router the UI talks to, and the correlation
    id every audit event of this form is tagged with. `record_id` is set
    when an existing transfer is being edited.
    """

    def __init__(
        self,
        resolver: TransferResolver,
        correlation_id: Optional[UUID] = None,
        record_id: Optional[UUID] = None,
    ):
        self.resolver = resolver
        self.router = InputRouter(resolver)
        self.correlation_id = correlation_id or create_correlation_id()
        self.record_id = record_id
        self.committed: Optional[TransferRecord] = None

    @property
    def is_editing(self) -> bool:
        return self.record_id is not None

    @property
    def is_closed(self) -> bool:
        return self.committed is not None


class TransferEntryFlow:
    """
    Orchestrates the transfer entry flow.

    Flow:
    1. Open -> fresh form, or a stored transfer rehydrated for editing
    2. Edit -> UI events go through session.router
    3. Save -> resolver builds the commit, ledger stores it (ONCE)
       or
       Cancel -> nothing is written
    """

    def __init__(
        self,
        conversion: ConversionPort,
        ledger: Optional[LedgerCommitInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._conversion = conversion
        self._ledger = ledger
        self._audit_logger = audit_logger

    @property
    def conversion(self) -> ConversionPort:
        return self._conversion

    @property
    def ledger(self) -> Optional[LedgerCommitInterface]:
        return self._ledger

    def open_new(
        self,
        accounts: Sequence[Account],
        default_account_id: Optional[int] = None,
    ) -> TransferSession:
        """
        Open a fresh transfer form.

        The source leg is preselected with the default account if it is
        transferable, otherwise with the first transferable account.
        """
        resolver = TransferResolver(self._conversion)

        transferable = [a for a in accounts if a.is_transferable]
        default = next(
            (a for a in transferable if a.id == default_account_id),
            transferable[0] if transferable else None,
        )
        if default is not None:
            resolver.select_account(LegSide.SOURCE, default)

        session = TransferSession(resolver)

        if self._audit_logger:
            self._audit_logger.log_transfer_opened(
                correlation_id=session.correlation_id,
                source_account_id=default.id if default else None,
            )

        return session

    def open_existing(
        self,
        record_id: UUID,
        accounts: Iterable[Account],
    ) -> TransferSession:
        """
        Reopen a stored transfer for editing.

        Raises:
            StorageError: if no ledger is configured
            NotFoundError: if the record does not exist
        """
        ledger = self._require_ledger()
        record = ledger.get_transfer(record_id)
        if record is None:
            raise NotFoundError(f"Transfer {record_id} not found")

        resolver = TransferResolver.from_record(record, accounts, self._conversion)
        session = TransferSession(resolver, record_id=record_id)

        if self._audit_logger:
            self._audit_logger.log_transfer_rehydrated(
                record_id=record_id,
                manual_override=resolver.state.manual_override,
                correlation_id=session.correlation_id,
            )

        return session

    def save(
        self,
        session: TransferSession,
        timestamp: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> TransferRecord:
        """
        Commit the session's transfer to the ledger.

        CRITICAL: The ledger is invoked at most once per session. When
        editing, the new record replaces the stored one.

        Raises:
            TransferAlreadySavedError: if this session was already saved
            TransferNotReadyError: if the save-time guard fails
            StorageError: if no ledger is configured or the write fails
        """
        if session.is_closed:
            raise TransferAlreadySavedError(
                f"Session {session.correlation_id} was already saved"
            )
        ledger = self._require_ledger()

        try:
            commit = session.resolver.build_commit(timestamp=timestamp, note=note)
        except TransferNotReadyError as e:
            if self._audit_logger:
                self._audit_logger.log_save_rejected(
                    issues=e.issues,
                    correlation_id=session.correlation_id,
                )
            raise

        try:
            record = ledger.commit_transfer(commit, replaces=session.record_id)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_save_failed(
                    error_message=str(e),
                    correlation_id=session.correlation_id,
                )
            raise

        session.committed = record

        if self._audit_logger:
            self._audit_logger.log_transfer_saved(
                record_id=record.record_id,
                source_amount=record.source_amount,
                source_currency=record.source_currency,
                target_amount=record.target_amount,
                target_currency=record.target_currency,
                fee=record.fee,
                correlation_id=session.correlation_id,
            )

        return record

    def cancel(self, session: TransferSession) -> None:
        """Discard the form. Nothing reaches the ledger."""
        if self._audit_logger:
            self._audit_logger.log_transfer_cancelled(session.correlation_id)

    def refresh_rates(
        self,
        fetcher: RateFetcher,
        sessions: Iterable[TransferSession] = (),
    ) -> int:
        """
        Refresh the exchange rate table and re-derive open forms.

        Returns:
            Number of currencies updated

        Raises:
            RateRefreshError: if the refresh failed (old rates stay in place)
            TypeError: if the conversion port is not a refreshable table
        """
        table = self._conversion
        if not isinstance(table, ExchangeRateTable):
            raise TypeError(
                f"{type(table).__name__} does not support rate refresh"
            )

        try:
            updated = table.refresh(fetcher)
        except RateRefreshError as e:
            if self._audit_logger:
                self._audit_logger.log_rate_update_failed(
                    base_currency=table.base_currency,
                    error_message=str(e),
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_rates_updated(
                base_currency=table.base_currency,
                updated_count=updated,
            )

        for session in sessions:
            if not session.is_closed:
                session.resolver.on_rates_updated()

        return updated

    def _require_ledger(self) -> LedgerCommitInterface:
        if self._ledger is None:
            raise StorageError("Ledger storage is not configured")
        return self._ledger


def create_app_components(
    use_storage: bool = True,
) -> tuple[TransferEntryFlow, Optional[InMemoryLedger]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to attach an in-memory ledger and audit store.
                    Set to False for a form that can only be previewed.

    Returns:
        (transfer_entry_flow, ledger)
    """
    configure_log_level(get_settings().app.log_level)

    ledger = None
    audit_logger = None

    if use_storage:
        ledger = InMemoryLedger()
        audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        audit_logger = AuditLogger()  # Local-only logging

    logger.info("app_components_created", storage=use_storage)

    flow = TransferEntryFlow(
        conversion=ExchangeRateTable(),
        ledger=ledger,
        audit_logger=audit_logger,
    )

    return flow, ledger
