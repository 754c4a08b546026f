"""Sync protocol between the local ledger and the remote store.

One invocation moves through::

    IDLE -> REQUESTING -> SUCCESS (adopt remote snapshot)
                       -> BLOCKED (data-loss guard, overwrite not confirmed)
                       -> FAILED  (transport or remote error, nothing changes)
         -> IDLE

The remote store is a peer that can be edited by hand or by another device.
Consistency is last-writer-wins on whole collections: the snapshot returned
by the remote replaces the local set wholesale, never merged per record.
"""

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum

from .clients.remote import RemoteStoreClient
from .exceptions import SyncDataLossGuardTriggered, SyncError, SyncInProgressError
from .models import BudgetMap, SyncResult, SyncSnapshot, SyncStatus, Transaction
from .wire import (
    check_status,
    decode_snapshot,
    decode_sync_response,
    encode_sync_request,
)

logger = logging.getLogger(__name__)

ConfirmOverwrite = Callable[[int], bool]


class SyncMode(str, Enum):
    """Protocol generation spoken with the remote store."""

    ATOMIC = "atomic"  # push and read back in one round trip
    LEGACY = "legacy"  # POST, then a separate GET


class SyncState(str, Enum):
    """States of a single sync invocation."""

    IDLE = "idle"
    REQUESTING = "requesting"
    SUCCESS = "success"
    BLOCKED = "blocked"
    FAILED = "failed"


def check_data_loss(local_count: int, snapshot: SyncSnapshot) -> None:
    """
    Guard against an empty remote wiping a non-empty local set.

    Raises:
        SyncDataLossGuardTriggered: If local has transactions and the remote
                                    snapshot has none
    """
    if local_count > 0 and not snapshot.transactions:
        raise SyncDataLossGuardTriggered(local_count, snapshot)


class SyncEngine:
    """Runs user-triggered, single-flight sync round trips."""

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        mode: SyncMode = SyncMode.ATOMIC,
        action: str = "sync",
    ):
        """
        Initialize the sync engine.

        Args:
            url: Remote store endpoint
            timeout: Request timeout in seconds; expiry is a transport failure
            mode: Protocol generation
            action: Action discriminator sent with atomic requests
        """
        self.url = url
        self.timeout = timeout
        self.mode = mode
        self.action = action
        self.state = SyncState.IDLE
        self.last_outcome: SyncState | None = None
        self._busy = threading.Lock()

    @property
    def busy(self) -> bool:
        """True while a sync is in flight."""
        return self._busy.locked()

    def exchange(
        self, transactions: list[Transaction], budgets: BudgetMap
    ) -> SyncSnapshot:
        """
        Push the local state and read back the remote state.

        Args:
            transactions: Full local transaction set
            budgets: Full local budget map

        Returns:
            The remote snapshot after the write

        Raises:
            SyncTransportError: On transport failures or malformed responses
            SyncRemoteError: If the remote reported an error
        """
        with RemoteStoreClient(self.url, timeout=self.timeout) as client:
            if self.mode is SyncMode.LEGACY:
                body = encode_sync_request(transactions, budgets, action=None)
                check_status(client.post(body))
                return decode_snapshot(client.get())

            body = encode_sync_request(transactions, budgets, action=self.action)
            return decode_sync_response(client.post(body))

    def sync(
        self,
        transactions: list[Transaction],
        budgets: BudgetMap,
        confirm_overwrite: ConfirmOverwrite | None = None,
    ) -> SyncResult:
        """
        Reconcile the local state with the remote store.

        Either the full remote snapshot is returned for adoption, or the
        local state is returned unchanged with status SKIPPED. Errors leave
        the local state untouched and are never retried.

        Args:
            transactions: Full local transaction set
            budgets: Full local budget map
            confirm_overwrite: Called with the local transaction count when
                the remote comes back empty. Returning True adopts the empty
                remote state. Without it the sync is skipped.

        Returns:
            The state the caller must adopt

        Raises:
            SyncInProgressError: If another sync is in flight
            SyncTransportError: On transport failures or malformed responses
            SyncRemoteError: If the remote reported an error
        """
        if not self._busy.acquire(blocking=False):
            raise SyncInProgressError("A sync is already in progress")

        try:
            self.state = SyncState.REQUESTING
            logger.info(
                f"Syncing {len(transactions)} transactions and "
                f"{len(budgets)} budgets ({self.mode.value} mode)"
            )

            try:
                snapshot = self.exchange(transactions, budgets)
                check_data_loss(len(transactions), snapshot)
            except SyncDataLossGuardTriggered as guard:
                if confirm_overwrite is None or not confirm_overwrite(
                    guard.local_count
                ):
                    logger.warning(
                        f"Sync skipped: remote is empty, keeping "
                        f"{guard.local_count} local transactions"
                    )
                    self.last_outcome = SyncState.BLOCKED
                    return SyncResult(
                        status=SyncStatus.SKIPPED,
                        transactions=list(transactions),
                        budgets=dict(budgets),
                    )
                logger.warning("Overwrite of local transactions confirmed")
                snapshot = guard.snapshot
            except SyncError as e:
                logger.error(f"Sync failed: {e}")
                self.last_outcome = SyncState.FAILED
                raise

            self.last_outcome = SyncState.SUCCESS
            logger.info(
                f"Sync complete: adopted {len(snapshot.transactions)} transactions"
            )
            return SyncResult(
                status=SyncStatus.SUCCESS,
                transactions=snapshot.transactions,
                budgets=snapshot.budgets,
                synced_at=datetime.now(UTC),
            )
        finally:
            self.state = SyncState.IDLE
            self._busy.release()
