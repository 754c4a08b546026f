"""Service layer that composes the ledger, the views, storage and sync.

Derived views (equity, budgets, summaries) are computed on demand from the
stored transactions; nothing derived is ever persisted.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from .budget import aggregate_budget, summarize_year
from .categories import DEFAULT_CATEGORIES, default_budgets, find_category
from .clients.coach import SpendingCoach
from .config import Settings
from .db import Database
from .equity import build_settlement_transaction, compute_equity
from .exceptions import (
    CoachUnavailableError,
    ConfigurationError,
    NothingToSettleError,
)
from .ledger import (
    add_transaction,
    create_transaction,
    in_window,
    remove_transaction,
    sort_newest_first,
)
from .models import (
    BudgetMap,
    BudgetReport,
    CategoryDefinition,
    EquityResult,
    PartnerProfile,
    PartnerRole,
    SyncResult,
    SyncStatus,
    Transaction,
    Window,
    YearlySummary,
)
from .money import to_cents
from .sync import ConfirmOverwrite, SyncEngine, SyncMode

logger = logging.getLogger(__name__)


class LedgerService:
    """User-level operations on the shared ledger."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        categories: list[CategoryDefinition] | None = None,
        coach: SpendingCoach | None = None,
    ):
        """
        Initialize the ledger service.

        Args:
            settings: Application settings
            database: Local persistence
            categories: Category registry (defaults to the built-in one)
            coach: Spending coach, or None when the capability is disabled
        """
        self.settings = settings
        self.db = database
        self.categories = categories or DEFAULT_CATEGORIES
        self.coach = coach
        self._engine: SyncEngine | None = None

    # ========================================================================
    # Stored state
    # ========================================================================

    def get_transactions(self) -> list[Transaction]:
        return self.db.get_transactions()

    def get_budgets(self) -> BudgetMap:
        budgets = self.db.get_budgets()
        return default_budgets() if budgets is None else budgets

    def get_partners(self) -> PartnerProfile:
        return self.db.get_partner_profile() or self.settings.default_partners()

    def set_partners(self, partner_1: str, partner_2: str) -> PartnerProfile:
        """Replace both partner display names."""
        if not partner_1.strip() or not partner_2.strip():
            raise ValueError("Partner names cannot be empty")
        profile = PartnerProfile(partner_1=partner_1.strip(), partner_2=partner_2.strip())
        self.db.set_partner_profile(profile)
        return profile

    def get_sync_url(self) -> str | None:
        """Stored remote URL, falling back to the configured one."""
        return self.db.get_sync_url() or self.settings.sync_url

    def set_sync_url(self, url: str):
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"Not an http(s) URL: {url}")
        self.db.set_sync_url(url)

    def get_last_sync(self) -> datetime | None:
        return self.db.get_last_sync()

    # ========================================================================
    # Edits
    # ========================================================================

    def add_transaction(
        self,
        description: str,
        payer: PartnerRole,
        splits: Iterable[tuple[str, Decimal | int | float | str]],
        date: datetime | None = None,
    ) -> Transaction:
        """
        Create, validate and store a new transaction.

        Raises:
            InvalidTransaction: If the transaction breaks a domain invariant
        """
        transaction = create_transaction(description, payer, splits, date=date)

        unknown = {
            split.category
            for split in transaction.splits
            if find_category(self.categories, split.category) is None
        }
        if unknown:
            logger.warning(
                f"Transaction {transaction.id} uses unregistered categories "
                f"{sorted(unknown)}; they will not show in budgets"
            )

        transactions = add_transaction(self.get_transactions(), transaction)
        self.db.set_transactions(transactions)

        logger.info(
            f"Added transaction {transaction.id}: {transaction.description} "
            f"${transaction.total_amount}"
        )
        return transaction

    def delete_transaction(self, transaction_id: str) -> None:
        """
        Delete a transaction by id.

        Raises:
            TransactionNotFoundError: If no transaction has that id
        """
        transactions = remove_transaction(self.get_transactions(), transaction_id)
        self.db.set_transactions(transactions)
        logger.info(f"Deleted transaction {transaction_id}")

    def set_budget(self, category: str, limit: Decimal | int | float | str) -> BudgetMap:
        """
        Set the monthly limit of a registered category.

        Returns:
            The updated budget map

        Raises:
            ValueError: If the category is unknown or the limit negative
        """
        if find_category(self.categories, category) is None:
            raise ValueError(f"Unknown category: {category}")
        amount = to_cents(limit)
        if amount < 0:
            raise ValueError("Budget limits cannot be negative")

        budgets = {**self.get_budgets(), category: amount}
        self.db.set_budgets(budgets)
        logger.info(f"Set budget for {category} to ${amount}")
        return budgets

    def reset(self) -> None:
        """Erase local transactions and restore the default budgets."""
        self.db.save_state([], default_budgets())
        logger.warning("Local transactions and budgets were reset")

    # ========================================================================
    # Views
    # ========================================================================

    def window_for(self, year: int | None = None, month: int | None = None) -> Window:
        """Month window in the configured timezone (defaults to this month)."""
        if year is None or month is None:
            return Window.current_month(self.settings.tz)
        return Window.for_month(year, month, self.settings.tz)

    def list_transactions(self, window: Window | None = None) -> list[Transaction]:
        transactions = self.get_transactions()
        if window is not None:
            transactions = in_window(transactions, window)
        return sort_newest_first(transactions)

    def equity(self, window: Window | None = None) -> EquityResult:
        return compute_equity(
            self.get_transactions(), window or self.window_for(), self.settings.ratio
        )

    def budget_report(self, window: Window | None = None) -> BudgetReport:
        return aggregate_budget(
            self.get_transactions(),
            self.get_budgets(),
            self.categories,
            window or self.window_for(),
        )

    def yearly_summary(
        self, year: int, share_partner: PartnerRole = PartnerRole.PARTNER_1
    ) -> YearlySummary:
        return summarize_year(
            self.get_transactions(),
            year,
            ratio=self.settings.ratio,
            share_partner=share_partner,
            tz=self.settings.tz,
        )

    # ========================================================================
    # Settle up
    # ========================================================================

    def settle_up(self, window: Window | None = None) -> Transaction:
        """
        Append the transaction that balances the given window.

        Returns:
            The synthesized settlement transaction

        Raises:
            NothingToSettleError: If the window is already balanced
        """
        window = window or self.window_for()
        transactions = self.get_transactions()
        partners = self.get_partners()

        equity = compute_equity(transactions, window, self.settings.ratio)
        if equity.owing_partner is None:
            raise NothingToSettleError("Already balanced, nothing to settle")

        settlement = build_settlement_transaction(
            transactions,
            window,
            self.settings.ratio,
            description=(
                f"Settle up: {partners.name_for(equity.owing_partner)} "
                f"paid {partners.name_for(equity.owing_partner.other)}"
            ),
        )
        if settlement is None:
            raise NothingToSettleError("Already balanced, nothing to settle")

        self.db.set_transactions(add_transaction(transactions, settlement))
        logger.info(f"Recorded settlement {settlement.id} (${settlement.total_amount})")
        return settlement

    # ========================================================================
    # Sync
    # ========================================================================

    @property
    def is_syncing(self) -> bool:
        return self._engine is not None and self._engine.busy

    def _sync_engine(self) -> SyncEngine:
        url = self.get_sync_url()
        if not url:
            raise ConfigurationError(
                "No sync URL configured. Run `duospend set-url <url>` or set SYNC_URL."
            )
        if self._engine is None or (self._engine.url != url and not self._engine.busy):
            self._engine = SyncEngine(
                url,
                timeout=self.settings.sync_timeout,
                mode=SyncMode(self.settings.sync_mode),
                action=self.settings.sync_action,
            )
        return self._engine

    def sync(self, confirm_overwrite: ConfirmOverwrite | None = None) -> SyncResult:
        """
        Sync with the remote store and adopt its snapshot.

        The adopted snapshot is persisted in one storage transaction. When
        the sync fails or is skipped, nothing local changes.

        Args:
            confirm_overwrite: Asked before an empty remote replaces a
                               non-empty local set

        Returns:
            The sync result

        Raises:
            ConfigurationError: If no sync URL is configured
            SyncError: If the sync failed (local state untouched)
        """
        engine = self._sync_engine()
        result = engine.sync(
            self.get_transactions(), self.get_budgets(), confirm_overwrite
        )

        if result.status is SyncStatus.SUCCESS:
            self.db.save_state(result.transactions, result.budgets, result.synced_at)

        return result

    # ========================================================================
    # Coach
    # ========================================================================

    def advise(self, window: Window | None = None) -> str:
        """
        Ask the spending coach about this month's transactions.

        Raises:
            CoachUnavailableError: If the coach is disabled or fails
        """
        if self.coach is None:
            raise CoachUnavailableError(
                "The spending coach is disabled (set OPENAI_API_KEY to enable it)"
            )

        transactions = self.list_transactions(window or self.window_for())
        if not transactions:
            raise CoachUnavailableError("Add some transactions first")

        return self.coach.advise(transactions, self.get_budgets(), self.get_partners())
