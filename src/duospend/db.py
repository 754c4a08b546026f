"""SQLite key/value persistence for DuoSpend."""

import json
import sqlite3
from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any

from .models import BudgetMap, PartnerProfile, Transaction
from .money import to_cents

# Storage keys
TRANSACTIONS_KEY = "transactions"
BUDGETS_KEY = "budgets"
PARTNER_NAMES_KEY = "partner_names"
LAST_SYNC_KEY = "last_sync"
SYNC_URL_KEY = "sync_url"


def _encode_transactions(transactions: list[Transaction]) -> list[dict[str, Any]]:
    return [t.model_dump(mode="json", exclude={"total_amount"}) for t in transactions]


def _encode_budgets(budgets: BudgetMap) -> dict[str, str]:
    return {category: str(limit) for category, limit in budgets.items()}


class Database:
    """SQLite database manager storing JSON documents by key."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Key/value operations
    # ========================================================================

    def load(self, key: str) -> Any | None:
        """Load the JSON value stored under a key, or None if absent."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM store WHERE key = ?", (key,))
        row = cursor.fetchone()
        return json.loads(row["value"]) if row else None

    def save(self, key: str, value: Any):
        """Store a JSON-serializable value under a key."""
        self.save_many({key: value})

    def save_many(self, items: Mapping[str, Any]):
        """Store several values in a single transaction (all or nothing)."""
        now = datetime.now().isoformat()
        rows = [(key, json.dumps(value), now) for key, value in items.items()]
        with self.conn:
            self.conn.executemany(
                """
                INSERT INTO store (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                rows,
            )

    # ========================================================================
    # Typed accessors
    # ========================================================================

    def get_transactions(self) -> list[Transaction]:
        """Get the stored transaction set."""
        value = self.load(TRANSACTIONS_KEY)
        if not value:
            return []
        return [Transaction.model_validate(item) for item in value]

    def set_transactions(self, transactions: list[Transaction]):
        """Store the transaction set."""
        self.save(TRANSACTIONS_KEY, _encode_transactions(transactions))

    def get_budgets(self) -> BudgetMap | None:
        """Get the stored budget map, or None if never saved."""
        value = self.load(BUDGETS_KEY)
        if value is None:
            return None
        return {category: to_cents(limit) for category, limit in value.items()}

    def set_budgets(self, budgets: BudgetMap):
        """Store the budget map."""
        self.save(BUDGETS_KEY, _encode_budgets(budgets))

    def get_partner_profile(self) -> PartnerProfile | None:
        """Get the stored partner names, or None if never saved."""
        value = self.load(PARTNER_NAMES_KEY)
        return PartnerProfile.model_validate(value) if value else None

    def set_partner_profile(self, profile: PartnerProfile):
        """Store partner names."""
        self.save(PARTNER_NAMES_KEY, profile.model_dump(mode="json"))

    def get_last_sync(self) -> datetime | None:
        """Get the time of the last successful sync."""
        value = self.load(LAST_SYNC_KEY)
        return datetime.fromisoformat(value) if value else None

    def get_sync_url(self) -> str | None:
        """Get the stored remote store URL."""
        value = self.load(SYNC_URL_KEY)
        return str(value) if value else None

    def set_sync_url(self, url: str):
        """Store the remote store URL."""
        self.save(SYNC_URL_KEY, url)

    def save_state(
        self,
        transactions: list[Transaction],
        budgets: BudgetMap,
        last_sync: datetime | None = None,
    ):
        """
        Store transactions and budgets together.

        Both collections (and the sync time, when given) are written in one
        SQLite transaction so a crash never leaves half of a synced snapshot.

        Args:
            transactions: Transaction set to store
            budgets: Budget map to store
            last_sync: Time of the sync that produced this state
        """
        items: dict[str, Any] = {
            TRANSACTIONS_KEY: _encode_transactions(transactions),
            BUDGETS_KEY: _encode_budgets(budgets),
        }
        if last_sync is not None:
            items[LAST_SYNC_KEY] = last_sync.isoformat()
        self.save_many(items)
