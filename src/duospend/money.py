"""Fixed-point money helpers.

All amounts are ``Decimal`` values quantized to cents so that sums of
splits never drift the way binary floats do.
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_cents(amount: Decimal | int | float | str) -> Decimal:
    """
    Convert an amount to a Decimal quantized to cents.

    Floats are converted through their string form so that ``12.34``
    becomes ``Decimal("12.34")`` and not its binary approximation.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount as Decimal, int, float or numeric string

    Returns:
        Amount quantized to two decimal places

    Raises:
        ValueError: If the amount is not a finite number
    """
    if isinstance(amount, bool):
        raise ValueError(f"Not a monetary amount: {amount!r}")
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not value.is_finite():
            raise ValueError(f"Not a monetary amount: {amount!r}")
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        # Raised by quantize when the amount has too many digits for the context
        raise ValueError(f"Not a monetary amount: {amount!r}") from e


def sum_amounts(amounts: Iterable[Decimal]) -> Decimal:
    """Sum amounts starting from a cent-quantized zero."""
    return sum(amounts, ZERO)


def is_negligible(amount: Decimal) -> bool:
    """Return True when an amount is below one cent in magnitude."""
    return abs(amount) < CENT
