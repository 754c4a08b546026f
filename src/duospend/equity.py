"""Equity engine: who owes whom under an agreed split ratio."""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from .categories import ADJUSTMENT_CATEGORY
from .exceptions import ConfigurationError
from .ledger import create_transaction, in_window
from .models import EquityResult, PartnerRole, SplitRatio, Transaction, Window
from .money import ZERO, is_negligible, to_cents

logger = logging.getLogger(__name__)


def compute_equity(
    transactions: Iterable[Transaction],
    window: Window,
    ratio: SplitRatio | None = None,
) -> EquityResult:
    """
    Compute the amount one partner owes the other over a window.

    Steps:
    1. Filter transactions to the window
    2. Sum totals per payer
    3. Expected share of partner 1 = combined total * ratio
    4. owed = expected share - what partner 1 actually paid
       (positive: partner 1 underpaid and owes partner 2,
        negative: partner 2 owes partner 1)

    Differences below one cent are reported as balanced. An empty window is
    balanced by definition.

    Args:
        transactions: Transactions to consider
        window: Half-open window to filter on
        ratio: Agreed split ratio (defaults to 50/50)

    Returns:
        Equity result with per-partner totals and the settlement direction
    """
    ratio = ratio or SplitRatio()

    paid = {PartnerRole.PARTNER_1: ZERO, PartnerRole.PARTNER_2: ZERO}
    for transaction in in_window(transactions, window):
        paid[transaction.payer] += transaction.total_amount

    combined = paid[PartnerRole.PARTNER_1] + paid[PartnerRole.PARTNER_2]
    expected_p1 = combined * ratio.partner_1
    owed = expected_p1 - paid[PartnerRole.PARTNER_1]

    if is_negligible(owed):
        return EquityResult(paid=paid, combined_total=combined)

    owing = PartnerRole.PARTNER_1 if owed > 0 else PartnerRole.PARTNER_2
    return EquityResult(
        paid=paid,
        combined_total=combined,
        owing_partner=owing,
        owed_amount=to_cents(abs(owed)),
    )


def build_settlement_transaction(
    transactions: Iterable[Transaction],
    window: Window,
    ratio: SplitRatio | None = None,
    when: datetime | None = None,
    description: str = "Settle up",
) -> Transaction | None:
    """
    Synthesize the transaction that brings a window back to balance.

    The owing partner is recorded as payer of an adjustment transaction of
    amount X chosen so that, with X added to both their paid total and the
    combined total, their expected share equals what they paid:

        X = owed / share of the partner who is owed

    For a 50/50 ratio X is the raw difference between the two paid totals,
    i.e. twice the owed amount. Cent rounding of X leaves a residual below
    one cent, which ``compute_equity`` reports as balanced.

    Args:
        transactions: Current transactions
        window: Window being settled
        ratio: Agreed split ratio (defaults to 50/50)
        when: Date for the new transaction. Defaults to now, or to the last
              second of the window when now is outside it. Naive values are
              read as UTC.
        description: Label for the new transaction

    Returns:
        The balancing transaction, or None if the window is already balanced

    Raises:
        ConfigurationError: If the owed partner carries a zero share
        ValueError: If an explicit ``when`` is outside the window
    """
    ratio = ratio or SplitRatio()
    transactions = list(transactions)
    equity = compute_equity(transactions, window, ratio)

    if equity.is_balanced or equity.owing_partner is None:
        return None

    owing = equity.owing_partner
    owed_share = ratio.share_of(owing.other)
    if owed_share == 0:
        raise ConfigurationError(
            "Cannot settle up: the partner who is owed carries a 0% share"
        )

    if when is None:
        now = datetime.now(UTC)
        when = now if window.contains(now) else window.end - timedelta(seconds=1)
    elif when.tzinfo is None:
        when = when.replace(tzinfo=UTC)

    if not window.contains(when):
        raise ValueError(f"Settlement date {when} is outside the window")

    amount = to_cents(equity.owed_amount / owed_share)

    logger.info(
        f"Settling {equity.owed_amount} owed by {owing.value}: "
        f"recording {amount} paid by {owing.value}"
    )

    return create_transaction(
        description=description,
        payer=owing,
        splits=[(ADJUSTMENT_CATEGORY, amount)],
        date=when,
    )
