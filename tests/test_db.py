"""Tests for local persistence."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from duospend.db import Database
from duospend.ledger import create_transaction
from duospend.models import PartnerProfile, PartnerRole


@pytest.fixture
def db_path(tmp_path):
    """Path of a temporary database."""
    return tmp_path / "test.db"


@pytest.fixture
def mock_db(db_path):
    """Create a temporary database."""
    db = Database(db_path)
    yield db
    db.close()


@pytest.fixture
def transactions():
    """Sample transactions."""
    return [
        create_transaction(
            "Rent",
            PartnerRole.PARTNER_1,
            [("Rent & Utilities", "1200"), ("Food & Dining", "0.99")],
            datetime(2024, 1, 1, 9, tzinfo=UTC),
        ),
        create_transaction(
            "Movies",
            PartnerRole.PARTNER_2,
            [("Entertainment", "24.50")],
            datetime(2024, 1, 3, 20, tzinfo=UTC),
        ),
    ]


class TestEmptyDatabase:
    """A fresh database has no state."""

    def test_defaults(self, mock_db):
        assert mock_db.get_transactions() == []
        assert mock_db.get_budgets() is None
        assert mock_db.get_partner_profile() is None
        assert mock_db.get_last_sync() is None
        assert mock_db.get_sync_url() is None
        assert mock_db.load("anything") is None


class TestPersistence:
    """Stored values survive a reopen."""

    def test_transactions(self, mock_db, db_path, transactions):
        mock_db.set_transactions(transactions)
        mock_db.close()

        reopened = Database(db_path)
        try:
            loaded = reopened.get_transactions()
        finally:
            reopened.close()

        assert loaded == transactions
        assert loaded[0].total_amount == Decimal("1200.99")

    def test_budgets_keep_cents(self, mock_db):
        mock_db.set_budgets({"Shopping": Decimal("300.10"), "Transport": Decimal("0")})

        assert mock_db.get_budgets() == {
            "Shopping": Decimal("300.10"),
            "Transport": Decimal("0.00"),
        }

    def test_empty_budget_map_is_not_unset(self, mock_db):
        mock_db.set_budgets({})

        assert mock_db.get_budgets() == {}

    def test_partner_profile(self, mock_db):
        mock_db.set_partner_profile(PartnerProfile(partner_1="Alex", partner_2="Sam"))

        assert mock_db.get_partner_profile() == PartnerProfile(
            partner_1="Alex", partner_2="Sam"
        )

    def test_sync_url(self, mock_db):
        mock_db.set_sync_url("https://example.com/exec")

        assert mock_db.get_sync_url() == "https://example.com/exec"

    def test_overwrite(self, mock_db, transactions):
        mock_db.set_transactions(transactions)
        mock_db.set_transactions(transactions[:1])

        assert mock_db.get_transactions() == transactions[:1]


class TestSaveState:
    """Synced snapshots are written together."""

    def test_writes_everything(self, mock_db, transactions):
        synced_at = datetime(2024, 2, 1, 8, 30, tzinfo=UTC)

        mock_db.save_state(transactions, {"Shopping": Decimal("300")}, synced_at)

        assert mock_db.get_transactions() == transactions
        assert mock_db.get_budgets() == {"Shopping": Decimal("300.00")}
        assert mock_db.get_last_sync() == synced_at

    def test_without_sync_time(self, mock_db, transactions):
        mock_db.save_state(transactions, {})

        assert mock_db.get_last_sync() is None

    def test_failed_write_changes_nothing(self, mock_db, transactions):
        mock_db.save_state(transactions, {"Shopping": Decimal("300")})

        with pytest.raises(TypeError):
            mock_db.save_many({"transactions": [], "budgets": object()})

        assert mock_db.get_transactions() == transactions
        assert mock_db.get_budgets() == {"Shopping": Decimal("300.00")}
