"""Transaction validation and pure ledger operations."""

import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from .exceptions import InvalidTransaction, TransactionNotFoundError
from .models import PartnerRole, Split, Transaction, Window
from .money import to_cents

logger = logging.getLogger(__name__)


def new_transaction_id() -> str:
    """Generate a client-side transaction id."""
    return uuid.uuid4().hex


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def validate_transaction(data: Transaction | Mapping[str, Any]) -> Transaction:
    """
    Validate a transaction against the domain invariants.

    The total is always recomputed from the splits. A ``total_amount`` key in
    a mapping is treated as a declared value only: when it disagrees with the
    splits it is ignored and a warning is logged.

    Args:
        data: A Transaction, or a mapping with ``id``, ``date``,
              ``description``, ``payer`` and ``splits`` (each split a mapping
              with ``category`` and ``amount``)

    Returns:
        The validated transaction

    Raises:
        InvalidTransaction: If splits are empty, a field is invalid, or the
                            derived total is not positive
    """
    declared_total = None

    if isinstance(data, Transaction):
        transaction = data
    else:
        fields = dict(data)
        declared_total = fields.pop("total_amount", None)

        if not fields.get("splits"):
            raise InvalidTransaction(
                f"Transaction {fields.get('id', '?')} must have at least one split"
            )

        try:
            transaction = Transaction.model_validate(fields)
        except ValidationError as e:
            raise InvalidTransaction(
                f"Invalid transaction {fields.get('id', '?')}: {_describe(e)}"
            ) from e

    if transaction.total_amount <= 0:
        raise InvalidTransaction(
            f"Transaction {transaction.id} has a non-positive total "
            f"({transaction.total_amount})"
        )

    if declared_total is not None:
        try:
            declared = to_cents(declared_total)
        except ValueError:
            declared = None
        if declared != transaction.total_amount:
            logger.warning(
                f"Transaction {transaction.id} declared total {declared_total} "
                f"but splits sum to {transaction.total_amount}; using splits"
            )

    return transaction


def create_transaction(
    description: str,
    payer: PartnerRole,
    splits: Iterable[tuple[str, Decimal | int | float | str]],
    date: datetime | None = None,
    transaction_id: str | None = None,
) -> Transaction:
    """
    Create a new validated transaction with a fresh id.

    Zero-amount splits are dropped before validation, so a form with an
    unused split row still produces a valid transaction.

    Args:
        description: Free-text label (defaults to "Expense" when blank)
        payer: Partner who paid
        splits: (category, amount) pairs
        date: Transaction timestamp (defaults to now, UTC)
        transaction_id: Explicit id (defaults to a new uuid)

    Returns:
        The new transaction

    Raises:
        InvalidTransaction: If no positive split remains or an amount is invalid
    """
    split_models = []
    for category, amount in splits:
        try:
            cents = to_cents(amount)
        except ValueError as e:
            raise InvalidTransaction(str(e)) from e
        if cents == 0:
            continue
        split_models.append({"category": category, "amount": cents})

    return validate_transaction(
        {
            "id": transaction_id or new_transaction_id(),
            "date": date or datetime.now(UTC),
            "description": description.strip() or "Expense",
            "payer": payer,
            "splits": split_models,
        }
    )


def add_transaction(
    transactions: list[Transaction], transaction: Transaction
) -> list[Transaction]:
    """Return a new list with the transaction appended.

    Raises:
        InvalidTransaction: If the id is already present
    """
    if any(existing.id == transaction.id for existing in transactions):
        raise InvalidTransaction(f"Duplicate transaction id {transaction.id}")
    return [*transactions, validate_transaction(transaction)]


def remove_transaction(
    transactions: list[Transaction], transaction_id: str
) -> list[Transaction]:
    """Return a new list without the given transaction.

    Raises:
        TransactionNotFoundError: If no transaction has that id
    """
    remaining = [t for t in transactions if t.id != transaction_id]
    if len(remaining) == len(transactions):
        raise TransactionNotFoundError(transaction_id)
    return remaining


def in_window(transactions: Iterable[Transaction], window: Window) -> list[Transaction]:
    """Transactions dated inside ``[window.start, window.end)``."""
    return [t for t in transactions if window.contains(t.date)]


def sort_newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Sort transactions by date, most recent first."""
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def split_list(splits: Iterable[Split]) -> str:
    """Render splits as ``Category $amount`` pairs for display."""
    return ", ".join(f"{split.category} ${split.amount:,.2f}" for split in splits)
