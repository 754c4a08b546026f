"""Custom exceptions for DuoSpend."""

from typing import Any


class DuoSpendError(Exception):
    """Base exception for all DuoSpend errors."""

    pass


class ConfigurationError(DuoSpendError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidTransaction(DuoSpendError):
    """Raised when a transaction violates the domain invariants."""

    pass


class TransactionNotFoundError(DuoSpendError):
    """Raised when a transaction id is not in the local set."""

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"No transaction with id {transaction_id}")


class NothingToSettleError(DuoSpendError):
    """Raised when settling up a window that is already balanced."""

    pass


class SyncError(DuoSpendError):
    """Base class for sync errors. Local state is never modified."""

    pass


class SyncTransportError(SyncError):
    """Raised when the remote store cannot be reached or times out."""

    pass


class MalformedResponseError(SyncTransportError):
    """Raised when the remote store answers with an unusable body."""

    pass


class SyncRemoteError(SyncError):
    """Raised when the remote store reports status "error"."""

    def __init__(self, remote_message: str | None):
        self.remote_message = remote_message
        super().__init__(f"Remote store error: {remote_message or 'no message'}")


class SyncDataLossGuardTriggered(SyncError):
    """Raised when the remote returned no transactions but local has some.

    The remote snapshot is kept on the exception so that a confirmed
    overwrite does not need a second round trip.
    """

    def __init__(self, local_count: int, snapshot: Any):
        self.local_count = local_count
        self.snapshot = snapshot
        super().__init__(
            f"Remote store returned 0 transactions but {local_count} exist locally"
        )


class SyncInProgressError(SyncError):
    """Raised when a sync is triggered while another one is in flight."""

    pass


class CoachUnavailableError(DuoSpendError):
    """Raised when the spending coach is disabled or its API call fails."""

    pass
