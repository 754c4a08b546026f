"""Tests for LedgerService layer."""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from duospend.categories import ADJUSTMENT_CATEGORY, default_budgets
from duospend.config import Settings
from duospend.db import Database
from duospend.exceptions import (
    CoachUnavailableError,
    ConfigurationError,
    NothingToSettleError,
    SyncRemoteError,
    SyncTransportError,
)
from duospend.models import PartnerRole, SyncStatus, Window
from duospend.service import LedgerService
from duospend.wire import encode_transaction

P1 = PartnerRole.PARTNER_1
P2 = PartnerRole.PARTNER_2


@pytest.fixture
def mock_settings(tmp_path):
    """Create settings pointing at a temporary database."""
    return Settings(
        database_path=tmp_path / "test.db",
        sync_url="https://script.example.com/exec",
        partner_1_name="Alex",
        partner_2_name="Sam",
        timezone="UTC",
        split_ratio=Decimal("0.5"),
        openai_api_key=None,
    )


@pytest.fixture
def mock_db(mock_settings):
    """Create a temporary database."""
    db = Database(mock_settings.database_path)
    yield db
    db.close()


@pytest.fixture
def service(mock_settings, mock_db):
    """Create a LedgerService instance."""
    return LedgerService(mock_settings, mock_db)


@pytest.fixture
def mock_client():
    """Patch the remote store client used by the sync engine."""
    with patch("duospend.sync.RemoteStoreClient") as mock_client_class:
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        mock_client.__enter__.return_value = mock_client
        yield mock_client


class TestEdits:
    """Test adding, deleting and budgeting."""

    def test_add_persists(self, service, mock_settings):
        transaction = service.add_transaction(
            "Groceries", P1, [("Food & Dining", "54.20")]
        )

        reopened = Database(mock_settings.database_path)
        try:
            assert reopened.get_transactions() == [transaction]
        finally:
            reopened.close()

    def test_add_warns_about_unregistered_category(self, service, caplog):
        with caplog.at_level(logging.WARNING):
            service.add_transaction("Vet", P2, [("Pets", "80")])

        assert "unregistered" in caplog.text
        assert len(service.get_transactions()) == 1

    def test_delete(self, service):
        keep = service.add_transaction("Keep", P1, [("Shopping", "1")])
        drop = service.add_transaction("Drop", P1, [("Shopping", "2")])

        service.delete_transaction(drop.id)

        assert service.get_transactions() == [keep]

    def test_budgets_default_until_set(self, service):
        assert service.get_budgets() == default_budgets()

        budgets = service.set_budget("Shopping", "450")

        assert budgets["Shopping"] == Decimal("450.00")
        assert service.get_budgets()["Shopping"] == Decimal("450.00")
        assert service.get_budgets()["Transport"] == Decimal("150.00")

    def test_set_budget_unknown_category(self, service):
        with pytest.raises(ValueError, match="Unknown category"):
            service.set_budget("Pets", "10")

    def test_set_budget_negative(self, service):
        with pytest.raises(ValueError, match="negative"):
            service.set_budget("Shopping", "-1")

    def test_reset(self, service):
        service.add_transaction("Groceries", P1, [("Food & Dining", "10")])
        service.set_budget("Shopping", "1")

        service.reset()

        assert service.get_transactions() == []
        assert service.get_budgets() == default_budgets()


class TestPartners:
    """Test partner names."""

    def test_defaults_come_from_settings(self, service):
        profile = service.get_partners()

        assert profile.name_for(P1) == "Alex"
        assert profile.role_for("sam") is P2

    def test_rename(self, service):
        service.set_partners(" Jo ", "Kim")

        assert service.get_partners().partner_1 == "Jo"
        assert service.get_partners().role_for("2") is P2

    def test_empty_name_rejected(self, service):
        with pytest.raises(ValueError):
            service.set_partners("", "Kim")

    def test_unknown_name(self, service):
        with pytest.raises(ValueError):
            service.get_partners().role_for("Taylor")


class TestViews:
    """Test derived views over stored transactions."""

    def test_list_is_newest_first_and_windowed(self, service):
        service.add_transaction(
            "Old", P1, [("Shopping", "1")], date=datetime(2024, 1, 1, tzinfo=UTC)
        )
        service.add_transaction(
            "New", P1, [("Shopping", "1")], date=datetime(2024, 1, 20, tzinfo=UTC)
        )
        service.add_transaction(
            "Feb", P1, [("Shopping", "1")], date=datetime(2024, 2, 2, tzinfo=UTC)
        )

        january = service.list_transactions(service.window_for(2024, 1))

        assert [t.description for t in january] == ["New", "Old"]
        assert len(service.list_transactions()) == 3

    def test_equity_and_budget_for_month(self, service):
        service.add_transaction(
            "Dinner", P1, [("Food & Dining", "100")], date=datetime(2024, 3, 3, tzinfo=UTC)
        )
        window = service.window_for(2024, 3)

        assert service.equity(window).owing_partner is P2
        assert service.equity(window).owed_amount == Decimal("50.00")
        assert service.budget_report(window).total_spent == Decimal("100.00")

    def test_yearly_summary(self, service):
        service.add_transaction(
            "Dinner", P1, [("Food & Dining", "100")], date=datetime(2024, 3, 3, tzinfo=UTC)
        )

        summary = service.yearly_summary(2024, share_partner=P2)

        assert summary.grand_totals[2] == Decimal("100.00")
        assert summary.share_totals[2] == Decimal("50.00")


class TestSettleUp:
    """Test the settle-up workflow."""

    def test_settle_up_balances_window(self, service):
        service.add_transaction("Groceries", P1, [("Food & Dining", "100")])

        settlement = service.settle_up()

        assert settlement.payer is P2
        assert settlement.total_amount == Decimal("100.00")
        assert settlement.splits[0].category == ADJUSTMENT_CATEGORY
        assert settlement.description == "Settle up: Sam paid Alex"
        assert service.equity().is_balanced
        assert len(service.get_transactions()) == 2

    def test_settlement_is_not_budget_spending(self, service):
        service.add_transaction("Groceries", P1, [("Food & Dining", "100")])
        service.settle_up()

        assert service.budget_report().total_spent == Decimal("100.00")

    def test_settle_past_month(self, service):
        service.add_transaction(
            "Rent", P2, [("Rent & Utilities", "1000")], date=datetime(2024, 1, 1, tzinfo=UTC)
        )
        window = service.window_for(2024, 1)

        settlement = service.settle_up(window)

        assert window.contains(settlement.date)
        assert service.equity(window).is_balanced

    def test_nothing_to_settle(self, service):
        with pytest.raises(NothingToSettleError):
            service.settle_up()


class TestSync:
    """Test sync through the service and its persistence guarantees."""

    def test_success_is_persisted(self, service, mock_client, mock_db):
        local = service.add_transaction("Groceries", P1, [("Food & Dining", "20")])
        remote = service.add_transaction("Cinema", P2, [("Entertainment", "15")])
        service.delete_transaction(remote.id)
        mock_client.post.return_value = {
            "status": "success",
            "transactions": [encode_transaction(local), encode_transaction(remote)],
            "budgets": {"Shopping": 123},
        }

        result = service.sync()

        assert result.status is SyncStatus.SUCCESS
        assert [t.id for t in service.get_transactions()] == [local.id, remote.id]
        assert service.get_budgets() == {"Shopping": Decimal("123.00")}
        assert service.get_last_sync() == result.synced_at

    @pytest.mark.parametrize(
        "failure",
        [
            SyncTransportError("timed out"),
            SyncRemoteError("Sheet is locked"),
        ],
    )
    def test_failure_changes_nothing(self, service, mock_client, failure):
        before = service.add_transaction("Groceries", P1, [("Food & Dining", "20")])
        service.set_budget("Shopping", "99")
        mock_client.post.side_effect = failure

        with pytest.raises(type(failure)):
            service.sync()

        assert service.get_transactions() == [before]
        assert service.get_budgets()["Shopping"] == Decimal("99.00")
        assert service.get_last_sync() is None
        assert not service.is_syncing

    def test_malformed_response_changes_nothing(self, service, mock_client):
        before = service.add_transaction("Groceries", P1, [("Food & Dining", "20")])
        mock_client.post.return_value = {"status": "success", "transactions": "oops"}

        with pytest.raises(SyncTransportError):
            service.sync()

        assert service.get_transactions() == [before]

    def test_empty_remote_is_skipped(self, service, mock_client):
        before = service.add_transaction("Groceries", P1, [("Food & Dining", "20")])
        mock_client.post.return_value = {
            "status": "success",
            "transactions": [],
            "budgets": {},
        }

        result = service.sync()

        assert result.status is SyncStatus.SKIPPED
        assert service.get_transactions() == [before]
        assert service.get_last_sync() is None

    def test_confirmed_empty_remote_is_adopted(self, service, mock_client):
        service.add_transaction("Groceries", P1, [("Food & Dining", "20")])
        mock_client.post.return_value = {
            "status": "success",
            "transactions": [],
            "budgets": {},
        }

        result = service.sync(confirm_overwrite=lambda count: count == 1)

        assert result.status is SyncStatus.SUCCESS
        assert service.get_transactions() == []
        assert service.get_budgets() == {}

    def test_stored_url_overrides_settings(self, service, mock_client):
        mock_client.post.return_value = {
            "status": "success",
            "transactions": [],
            "budgets": {},
        }
        service.set_sync_url("https://other.example.com/exec")

        with patch("duospend.sync.RemoteStoreClient") as mock_client_class:
            mock_client_class.return_value = mock_client
            service.sync()

        assert mock_client_class.call_args[0][0] == "https://other.example.com/exec"

    def test_invalid_url_rejected(self, service):
        with pytest.raises(ValueError):
            service.set_sync_url("ftp://example.com")

    def test_missing_url(self, tmp_path, mock_db):
        settings = Settings(database_path=tmp_path / "other.db", sync_url=None)
        service = LedgerService(settings, mock_db)

        with pytest.raises(ConfigurationError, match="No sync URL"):
            service.sync()


class TestCoach:
    """Test the optional spending coach."""

    def test_disabled(self, service):
        with pytest.raises(CoachUnavailableError, match="disabled"):
            service.advise()

    def test_needs_transactions(self, mock_settings, mock_db):
        service = LedgerService(mock_settings, mock_db, coach=MagicMock())

        with pytest.raises(CoachUnavailableError):
            service.advise()

    def test_advise(self, mock_settings, mock_db):
        coach = MagicMock()
        coach.advise.return_value = "Cook at home more."
        service = LedgerService(mock_settings, mock_db, coach=coach)
        transaction = service.add_transaction("Takeout", P1, [("Food & Dining", "60")])

        advice = service.advise(Window.current_month())

        assert advice == "Cook at home more."
        transactions, budgets, partners = coach.advise.call_args[0]
        assert transactions == [transaction]
        assert budgets == default_budgets()
        assert partners.partner_1 == "Alex"
