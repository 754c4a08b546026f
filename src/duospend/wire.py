"""Wire codec for the remote store sync contract.

Request body::

    {"action": "sync",
     "transactions": [{"id", "date", "description", "userId",
                       "totalAmount", "splits": [{"categoryName", "amount"}]}],
     "budgets": {"<categoryName>": <number>}}

Response body::

    {"status": "success" | "error", "message"?: str,
     "transactions": [...], "budgets": {...}}
"""

import json
import logging
from collections.abc import Iterable, Mapping
from datetime import UTC
from typing import Any

from .categories import FALLBACK_CATEGORY
from .exceptions import InvalidTransaction, MalformedResponseError, SyncRemoteError
from .ledger import validate_transaction
from .models import BudgetMap, SyncSnapshot, Transaction
from .money import to_cents

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"


# ============================================================================
# Encoding
# ============================================================================


def encode_transaction(transaction: Transaction) -> dict[str, Any]:
    """Encode a transaction into its wire shape."""
    return {
        "id": transaction.id,
        "date": transaction.date.astimezone(UTC).isoformat().replace("+00:00", "Z"),
        "description": transaction.description,
        "userId": transaction.payer.value,
        "totalAmount": float(transaction.total_amount),
        "splits": [
            {"categoryName": split.category, "amount": float(split.amount)}
            for split in transaction.splits
        ],
    }


def encode_budgets(budgets: BudgetMap) -> dict[str, float]:
    """Encode a budget map with JSON numbers."""
    return {category: float(limit) for category, limit in budgets.items()}


def encode_sync_request(
    transactions: Iterable[Transaction],
    budgets: BudgetMap,
    action: str | None = "sync",
) -> dict[str, Any]:
    """
    Build the request body for a sync round trip.

    Args:
        transactions: Full local transaction set
        budgets: Full local budget map
        action: Action discriminator; None omits it (legacy push)

    Returns:
        JSON-serializable request body
    """
    body: dict[str, Any] = {}
    if action is not None:
        body["action"] = action
    body["transactions"] = [encode_transaction(t) for t in transactions]
    body["budgets"] = encode_budgets(budgets)
    return body


# ============================================================================
# Decoding
# ============================================================================


def _decode_splits(row: Mapping[str, Any]) -> list[dict[str, Any]]:
    raw = row.get("splits")

    # Spreadsheet rows keep splits as a JSON string
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            raw = None

    if isinstance(raw, list) and raw:
        splits = []
        for split in raw:
            if not isinstance(split, Mapping):
                raise MalformedResponseError(
                    f"Transaction {row.get('id')} has a malformed split: {split!r}"
                )
            splits.append(
                {"category": split.get("categoryName"), "amount": split.get("amount")}
            )
        return splits

    if row.get("totalAmount") is None:
        raise MalformedResponseError(
            f"Transaction {row.get('id')} has neither splits nor a total"
        )

    logger.warning(
        f"Transaction {row.get('id')} has unreadable splits; "
        f"filing its total under '{FALLBACK_CATEGORY}'"
    )
    return [{"category": FALLBACK_CATEGORY, "amount": row["totalAmount"]}]


def decode_transaction(row: Any) -> Transaction:
    """
    Decode one wire transaction.

    Raises:
        MalformedResponseError: If the row is not a valid transaction
    """
    if not isinstance(row, Mapping):
        raise MalformedResponseError(f"Expected a transaction object, got {row!r}")

    for key in ("id", "date", "userId"):
        if row.get(key) in (None, ""):
            raise MalformedResponseError(f"Transaction is missing '{key}': {row!r}")

    try:
        return validate_transaction(
            {
                "id": str(row["id"]),
                "date": row["date"],
                "description": str(row.get("description") or ""),
                "payer": row["userId"],
                "splits": _decode_splits(row),
                "total_amount": row.get("totalAmount"),
            }
        )
    except InvalidTransaction as e:
        raise MalformedResponseError(f"Remote sent an invalid transaction: {e}") from e


def decode_budgets(raw: Any) -> BudgetMap:
    """
    Decode a wire budget map.

    Raises:
        MalformedResponseError: If the map or any limit is invalid
    """
    if not isinstance(raw, Mapping):
        raise MalformedResponseError(f"Expected a budget object, got {raw!r}")

    budgets: BudgetMap = {}
    for category, limit in raw.items():
        try:
            amount = to_cents(limit)
        except ValueError as e:
            raise MalformedResponseError(
                f"Budget for '{category}' is not a number: {limit!r}"
            ) from e
        if amount < 0:
            raise MalformedResponseError(f"Budget for '{category}' is negative")
        budgets[str(category)] = amount
    return budgets


def decode_snapshot(body: Any) -> SyncSnapshot:
    """
    Decode the transactions and budgets of a response body.

    Rows repeating an id already seen are discarded, keeping the first.

    Raises:
        MalformedResponseError: If either collection is missing or invalid
    """
    if not isinstance(body, Mapping):
        raise MalformedResponseError("Response body is not a JSON object")

    rows = body.get("transactions")
    if not isinstance(rows, list):
        raise MalformedResponseError("Response has no 'transactions' list")
    if "budgets" not in body:
        raise MalformedResponseError("Response has no 'budgets' object")

    transactions: list[Transaction] = []
    seen: set[str] = set()
    for row in rows:
        transaction = decode_transaction(row)
        if transaction.id in seen:
            logger.warning(f"Discarding duplicate remote transaction {transaction.id}")
            continue
        seen.add(transaction.id)
        transactions.append(transaction)

    return SyncSnapshot(
        transactions=transactions, budgets=decode_budgets(body["budgets"])
    )


def check_status(body: Any) -> None:
    """
    Check the status discriminator of a response body.

    Raises:
        SyncRemoteError: If the remote reported ``status: "error"``
        MalformedResponseError: If the status is missing or unknown
    """
    if not isinstance(body, Mapping):
        raise MalformedResponseError("Response body is not a JSON object")

    status = body.get("status")
    if status == STATUS_ERROR:
        raise SyncRemoteError(body.get("message"))
    if status != STATUS_SUCCESS:
        raise MalformedResponseError(f"Unknown response status: {status!r}")


def decode_sync_response(body: Any) -> SyncSnapshot:
    """Decode a full sync response, checking its status first."""
    check_status(body)
    return decode_snapshot(body)
