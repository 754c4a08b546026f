"""DuoSpend - Shared expense tracking and settlement for two partners."""

__version__ = "0.1.0"

from .budget import aggregate_budget, summarize_year
from .config import Settings, load_settings
from .db import Database
from .equity import build_settlement_transaction, compute_equity
from .ledger import create_transaction, validate_transaction
from .models import (
    PartnerProfile,
    PartnerRole,
    Split,
    SplitRatio,
    SyncResult,
    SyncStatus,
    Transaction,
    Window,
)
from .service import LedgerService
from .sync import SyncEngine, SyncMode

__all__ = [
    "aggregate_budget",
    "summarize_year",
    "Settings",
    "load_settings",
    "Database",
    "build_settlement_transaction",
    "compute_equity",
    "create_transaction",
    "validate_transaction",
    "PartnerProfile",
    "PartnerRole",
    "Split",
    "SplitRatio",
    "SyncResult",
    "SyncStatus",
    "Transaction",
    "Window",
    "LedgerService",
    "SyncEngine",
    "SyncMode",
]
