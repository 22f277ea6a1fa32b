"""Fixed-point money helpers.

Amounts are computed as ``Decimal`` quantized to two places with ROUND_HALF_UP
and stored on aggregates as ``Float`` fields holding the quantized value.
"""

import os
from decimal import ROUND_HALF_UP, Decimal

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")

DEFAULT_CURRENCY = os.environ.get("COMMERCE_DEFAULT_CURRENCY", "USD")

VALID_CURRENCIES = frozenset(
    {
        "USD",
        "EUR",
        "GBP",
        "JPY",
        "CAD",
        "AUD",
        "CHF",
        "CNY",
        "INR",
        "MXN",
        "BRL",
        "KRW",
        "SGD",
        "HKD",
        "NOK",
        "SEK",
        "DKK",
        "NZD",
        "ZAR",
        "TWD",
    }
)


def to_money(value) -> Decimal:
    """Coerce ``value`` to a two-place Decimal, rounding half-up."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        # str() first so floats like 0.1 keep their printed value
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def as_float(value) -> float:
    """Storage form of a money value."""
    return float(to_money(value))


def money_sum(values) -> Decimal:
    return to_money(sum((to_money(v) for v in values), ZERO))
