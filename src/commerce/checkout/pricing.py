"""Checkout pricing: line totals, discount allocation and order totals.

Pure computation over catalog snapshots and discount rules; nothing here
touches a repository. Discounts are applied LINE_ITEM first, then ORDER, then
SHIPPING, and each one only sees what earlier allocations left of its base.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from commerce.catalog.port import Variant
from commerce.discount.discount import DiscountApplication
from commerce.discount.evaluator import evaluate
from commerce.shared.money import ZERO, money_sum, to_money

APPLICATION_ORDER = {
    DiscountApplication.LINE_ITEM.value: 0,
    DiscountApplication.ORDER.value: 1,
    DiscountApplication.SHIPPING.value: 2,
}


@dataclass(eq=False)
class PricedLine:
    """One cart item priced against its catalog variant."""

    variant: Variant
    quantity: int
    location_id: str | None = None
    unit_tax: Decimal = ZERO
    discount: Decimal = ZERO

    @property
    def unit_price(self) -> Decimal:
        return to_money(self.variant.price)

    @property
    def gross(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    @property
    def total(self) -> Decimal:
        return to_money(self.gross - self.discount)

    @property
    def tax(self) -> Decimal:
        return to_money(self.unit_tax * self.quantity)

    @property
    def weight(self) -> Decimal:
        return self.variant.weight_grams * self.quantity


@dataclass
class Allocation:
    discount: object
    amount: Decimal
    line: PricedLine | None = None


@dataclass
class PricingPlan:
    lines: list[PricedLine]
    shipping_price: Decimal = ZERO
    allocations: list[Allocation] = field(default_factory=list)

    def allocated(self, application) -> Decimal:
        return money_sum(a.amount for a in self.allocations if a.discount.application == application)

    @property
    def subtotal(self) -> Decimal:
        return money_sum(line.gross for line in self.lines)

    @property
    def total_discounts(self) -> Decimal:
        return money_sum(a.amount for a in self.allocations)

    @property
    def total_tax(self) -> Decimal:
        return money_sum(line.tax for line in self.lines)

    @property
    def total_price(self) -> Decimal:
        return to_money(self.subtotal - self.total_discounts + self.total_tax + self.shipping_price)

    @property
    def total_weight(self) -> Decimal:
        return sum((line.weight for line in self.lines), Decimal("0"))


def _apply(plan, discount, now):
    """Allocate one discount against the part of its base still undiscounted.

    LINE_ITEM discounts apply to each line total. ORDER discounts apply to the
    order subtotal net of the LINE_ITEM and earlier ORDER allocations, so the
    same money is never discounted twice. SHIPPING discounts apply to the
    shipping price net of earlier SHIPPING allocations.
    """
    application = discount.application

    if application == DiscountApplication.LINE_ITEM.value:
        for line in plan.lines:
            amount = evaluate(discount, line.total, now)
            if amount > ZERO:
                line.discount = to_money(line.discount + amount)
                plan.allocations.append(Allocation(discount=discount, amount=amount, line=line))
        return

    if application == DiscountApplication.ORDER.value:
        base = plan.subtotal - plan.allocated(DiscountApplication.LINE_ITEM.value)
        base -= plan.allocated(DiscountApplication.ORDER.value)
    else:
        base = plan.shipping_price - plan.allocated(DiscountApplication.SHIPPING.value)

    amount = evaluate(discount, base, now)
    if amount > ZERO:
        plan.allocations.append(Allocation(discount=discount, amount=amount))


def price_order(lines, discounts=(), shipping_price=0, now=None) -> PricingPlan:
    """Price ``lines`` and allocate ``discounts`` across them.

    Args:
        lines: ``PricedLine`` objects, one per cart item.
        discounts: active ``Discount`` aggregates, already de-duplicated.
        shipping_price: the shipping charge SHIPPING discounts apply to.
        now: evaluation instant for discount windows. Defaults to now (UTC).

    Raises:
        DiscountNotActive: if any discount is outside its status or window.
    """
    now = now or datetime.now(UTC)
    plan = PricingPlan(lines=list(lines), shipping_price=to_money(shipping_price))

    for discount in sorted(discounts, key=lambda d: APPLICATION_ORDER[d.application]):
        _apply(plan, discount, now)

    return plan
