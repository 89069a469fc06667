"""Shared cent rounding for ledger amounts."""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")

# Half a cent: balances this close to zero count as settled.
SETTLE_TOLERANCE = Decimal("0.005")


def to_decimal(amount: Decimal | int | float | str | None) -> Decimal:
    """
    Coerce an amount to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion. None counts as zero.
    """
    if amount is None:
        return Decimal("0")
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


def to_cents(amount: Decimal | int | float | str | None) -> Decimal:
    """
    Round an amount to two decimal places.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Amount in currency units

    Returns:
        Amount quantized to cents
    """
    return to_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def is_settled(amount: Decimal) -> bool:
    """True when the amount is within half a cent of zero."""
    return abs(amount) <= SETTLE_TOLERANCE
