"""Money helpers using Decimal with two-decimal precision rules."""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_PRECISION = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyInput = Decimal | int | float | str | None


def quantize_money(value: Decimal) -> Decimal:
    """Return value rounded to two decimal places with HALF_UP strategy."""

    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def round_money(value: MoneyInput) -> Decimal:
    """Coerce any numeric input to a two-decimal Decimal.

    Missing, unparsable and non-finite values collapse to ``0.00`` so that a
    single broken ledger row never poisons an aggregate with NaN.
    """

    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        decimal_value = value
    else:
        # floats go through str() to avoid binary expansion artifacts
        try:
            decimal_value = Decimal(str(value).strip())
        except InvalidOperation:
            return ZERO
    if not decimal_value.is_finite():
        return ZERO
    return quantize_money(decimal_value)


def clamp_money(value: MoneyInput) -> Decimal:
    """Round value and clamp negatives to zero."""

    return max(ZERO, round_money(value))


def sum_money(values: Iterable[MoneyInput]) -> Decimal:
    """Sum values, rounding after every addition."""

    total = ZERO
    for value in values:
        total = round_money(total + round_money(value))
    return total


def parse_money(value: str) -> Decimal:
    """Parse and normalize input money string into Decimal."""

    return quantize_money(Decimal(value))


def format_money(value: Decimal) -> str:
    """Render money as string with exactly two decimal places."""

    return f"{quantize_money(value):.2f}"
