"""Discount Evaluator: turns a discount rule and a base amount into a credit.

The result is always within ``[0, base]``, so applying it can never push a
total below zero.
"""

from datetime import UTC, datetime
from decimal import Decimal

from commerce.discount.discount import DiscountMethod
from commerce.errors import DiscountNotActive
from commerce.shared.money import ZERO, to_money

HUNDRED = Decimal("100")


def evaluate(discount, base_amount, now=None) -> Decimal:
    now = now or datetime.now(UTC)
    if not discount.is_active_at(now):
        raise DiscountNotActive(discount.code, discount.status, now)

    base = to_money(base_amount)
    if base <= ZERO:
        return ZERO

    value = Decimal(str(discount.value))
    if DiscountMethod(discount.method) == DiscountMethod.PERCENT_OFF:
        amount = to_money(base * value / HUNDRED)
    else:
        amount = to_money(value)

    return max(ZERO, min(amount, base))
