"""
Integration tests for the transfer entry flow.

Uses in-memory storage and a fixed-rate conversion; no external services.
"""

import pytest
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from conftest import CASH, JAPAN_WALLET, LOAN, US_CHECKING
from timeledger.audit import AuditLogger
from timeledger.models.audit import AuditEventType
from timeledger.models.transfer import FocusField, LegSide
from timeledger.orchestrator import (
    TransferAlreadySavedError,
    TransferEntryFlow,
    create_app_components,
)
from timeledger.services.rates import ExchangeRateTable, RateRefreshError
from timeledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedger,
    NotFoundError,
    StorageError,
)
from timeledger.transfer import AccountPicked, TransferNotReadyError


class BrokenLedger(InMemoryLedger):
    def commit_transfer(self, commit, replaces=None):
        raise StorageError("disk full")


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def flow(conversion, audit_storage):
    return TransferEntryFlow(
        conversion=conversion,
        ledger=InMemoryLedger(),
        audit_logger=AuditLogger(audit_storage),
    )


def event_types(audit_storage):
    return [e.event_type for e in reversed(audit_storage.get_recent_events())]


def fill_usd_to_jpy(session, amount="10"):
    session.router.dispatch(AccountPicked(side=LegSide.SOURCE, account=US_CHECKING))
    session.router.dispatch(AccountPicked(side=LegSide.TARGET, account=JAPAN_WALLET))
    for key in amount:
        session.router.press(key)


class TestOpen:
    """Opening transfer forms."""

    def test_open_new_preselects_default(self, flow, accounts):
        session = flow.open_new(accounts, default_account_id=US_CHECKING.id)
        assert session.resolver.state.source.account == US_CHECKING
        assert session.is_editing is False

    def test_open_new_falls_back_to_first_transferable(self, flow):
        session = flow.open_new([LOAN, CASH], default_account_id=LOAN.id)
        assert session.resolver.state.source.account == CASH

    def test_open_new_without_accounts(self, flow):
        session = flow.open_new([])
        assert session.resolver.state.source.account is None

    def test_open_is_audited(self, flow, accounts, audit_storage):
        session = flow.open_new(accounts)
        events = audit_storage.get_events_by_correlation_id(session.correlation_id)
        assert [e.event_type for e in events] == [AuditEventType.TRANSFER_OPENED]

    def test_open_existing_unknown_raises(self, flow, accounts):
        with pytest.raises(NotFoundError):
            flow.open_existing(uuid4(), accounts)

    def test_open_existing_without_ledger_raises(self, conversion, accounts):
        with pytest.raises(StorageError):
            TransferEntryFlow(conversion).open_existing(uuid4(), accounts)


class TestSave:
    """Saving, refusing and cancelling."""

    def test_save_commits_once(self, flow, accounts, audit_storage):
        session = flow.open_new(accounts)
        fill_usd_to_jpy(session)

        record = flow.save(session, timestamp=datetime(2026, 5, 1), note="trip")

        assert record.source_amount == Decimal("10.00")
        assert record.target_amount == Decimal("1500")
        assert record.note == "trip"
        assert flow.ledger.list_transfers() == [record]
        assert session.committed == record
        assert AuditEventType.TRANSFER_SAVED in event_types(audit_storage)

    def test_second_save_refused(self, flow, accounts):
        session = flow.open_new(accounts)
        fill_usd_to_jpy(session)
        flow.save(session)

        with pytest.raises(TransferAlreadySavedError):
            flow.save(session)
        assert len(flow.ledger.list_transfers()) == 1

    def test_not_ready_is_refused_and_audited(self, flow, accounts, audit_storage):
        session = flow.open_new(accounts)

        with pytest.raises(TransferNotReadyError):
            flow.save(session)

        assert flow.ledger.list_transfers() == []
        assert AuditEventType.TRANSFER_SAVE_REJECTED in event_types(audit_storage)

    def test_no_ledger_raises(self, conversion, accounts):
        flow = TransferEntryFlow(conversion)
        session = flow.open_new(accounts)
        fill_usd_to_jpy(session)

        with pytest.raises(StorageError):
            flow.save(session)

    def test_storage_failure_is_audited(self, conversion, accounts, audit_storage):
        flow = TransferEntryFlow(
            conversion,
            ledger=BrokenLedger(),
            audit_logger=AuditLogger(audit_storage),
        )
        session = flow.open_new(accounts)
        fill_usd_to_jpy(session)

        with pytest.raises(StorageError):
            flow.save(session)

        assert session.committed is None
        assert AuditEventType.SAVE_FAILED in event_types(audit_storage)

    def test_cancel_writes_nothing(self, flow, accounts, audit_storage):
        session = flow.open_new(accounts)
        fill_usd_to_jpy(session)

        flow.cancel(session)

        assert flow.ledger.list_transfers() == []
        assert event_types(audit_storage)[-1] == AuditEventType.TRANSFER_CANCELLED


class TestEditExisting:
    """Round trip through the ledger."""

    def test_edit_replaces_record(self, flow, accounts):
        session = flow.open_new(accounts)
        fill_usd_to_jpy(session)
        original = flow.save(session)

        editing = flow.open_existing(original.record_id, accounts)
        assert editing.is_editing
        assert editing.resolver.state.manual_override is True
        assert editing.resolver.get_display_value(FocusField.SOURCE) == "10"
        assert editing.resolver.get_display_value(FocusField.TARGET) == "1500"

        editing.router.dispatch(AccountPicked(side=LegSide.TARGET, account=CASH))
        updated = flow.save(editing)

        assert flow.ledger.get_transfer(original.record_id) is None
        assert flow.ledger.list_transfers() == [updated]
        assert updated.target_account_id == CASH.id

    def test_same_currency_round_trip(self, flow, accounts):
        session = flow.open_new(accounts, default_account_id=CASH.id)
        session.router.dispatch(AccountPicked(side=LegSide.TARGET, account=accounts[1]))
        session.resolver.set_focus(FocusField.FEE)
        session.router.press("3")
        session.resolver.set_focus(FocusField.SOURCE)
        for key in "100":
            session.router.press(key)
        record = flow.save(session)

        editing = flow.open_existing(record.record_id, accounts)

        assert editing.resolver.get_display_value(FocusField.SOURCE) == "100"
        assert editing.resolver.get_display_value(FocusField.FEE) == "3"
        assert editing.resolver.get_display_value(FocusField.TARGET) == "97"


class TestRateRefresh:
    """Rate refresh while forms are open."""

    def test_refresh_rederives_open_sessions(self, audit_storage, accounts):
        table = ExchangeRateTable()
        flow = TransferEntryFlow(table, InMemoryLedger(), AuditLogger(audit_storage))
        session = flow.open_new(accounts, default_account_id=US_CHECKING.id)
        session.router.dispatch(AccountPicked(side=LegSide.TARGET, account=CASH))
        session.router.press("1")
        session.router.press("0")

        updated = flow.refresh_rates(lambda base: {"USD": Decimal("0.125")}, [session])

        assert updated == 1
        assert session.resolver.get_display_value(FocusField.TARGET) == "80"
        assert AuditEventType.RATES_UPDATED in event_types(audit_storage)

    def test_refresh_failure_is_audited(self, audit_storage, monkeypatch):
        monkeypatch.setenv("TIMELEDGER_RATES_REFRESH_MAX_ATTEMPTS", "1")
        monkeypatch.setenv("TIMELEDGER_RATES_REFRESH_WAIT_MIN", "0")
        monkeypatch.setenv("TIMELEDGER_RATES_REFRESH_WAIT_MAX", "0")
        flow = TransferEntryFlow(ExchangeRateTable(), audit_logger=AuditLogger(audit_storage))

        def failing(base):
            raise ConnectionError("offline")

        with pytest.raises(RateRefreshError):
            flow.refresh_rates(failing)

        assert event_types(audit_storage) == [AuditEventType.RATE_UPDATE_FAILED]

    def test_refresh_needs_rate_table(self, flow):
        with pytest.raises(TypeError):
            flow.refresh_rates(lambda base: {})


class TestAppComponents:
    """Factory wiring."""

    def test_with_storage(self):
        flow, ledger = create_app_components(use_storage=True)
        assert isinstance(ledger, InMemoryLedger)
        assert flow.ledger is ledger
        assert isinstance(flow.conversion, ExchangeRateTable)

    def test_without_storage(self):
        flow, ledger = create_app_components(use_storage=False)
        assert ledger is None
        assert flow.ledger is None
