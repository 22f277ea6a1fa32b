"""Order placement: the PlaceOrder command and its handler.

The handler is the whole checkout unit of work. It validates the cart, picks
and reserves stock, prices the order and snapshots everything into a new
Order, then flips the cart. Every check runs before the first repository
write, and the unit of work commits the inventory levels, the order and the
cart together, so a failure anywhere leaves all three untouched.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.catalog import get_catalog
from commerce.checkout.pricing import PricedLine, price_order
from commerce.discount.discount import Discount
from commerce.domain import commerce
from commerce.errors import CartAlreadyOrdered, EmptyCart, InsufficientStock, NotFound
from commerce.inventory.level import InventoryLevel
from commerce.locking import get_row_locks, inventory_key
from commerce.order.order import AddressType, DiscountAllocation, LineItem, Order, OrderAddress
from commerce.shared.money import DEFAULT_CURRENCY, as_float, to_money


@commerce.command(part_of="Order")
class PlaceOrder:
    """Convert an open cart into an order."""

    cart_id = Identifier(required=True)
    billing_address = Text(required=True)  # JSON: address fields
    shipping_address = Text()  # JSON: address fields
    discount_codes = Text()  # JSON: list of codes
    unit_tax_amounts = Text()  # JSON: {variant_id: unit tax}
    shipping_price = Float(default=0.0, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    location_id = Identifier()
    notes = Text()


def _loads(value, default):
    if not value:
        return default
    return json.loads(value) if isinstance(value, str) else value


def unique_codes(codes) -> list[str]:
    """Uppercase, strip and de-duplicate codes, keeping first-seen order."""
    seen = []
    for code in codes or ():
        code = str(code).strip().upper()
        if code and code not in seen:
            seen.append(code)
    return seen


def choose_level(repo, variant_id, quantity, location_id=None) -> InventoryLevel:
    """Pick the level a line's stock comes from.

    An explicit ``location_id`` wins. Otherwise the first level, in location
    order, that covers the whole quantity. Only levels the caller holds the row
    lock for are considered; a level stocked after the locks were taken is
    skipped.
    """
    if location_id:
        level = repo.at(variant_id, location_id)
        if level is None:
            raise InsufficientStock(variant_id, location_id, quantity, 0)
        return level

    levels = repo.for_variant(variant_id)
    locks = get_row_locks()
    held = [level for level in levels if locks.is_held(inventory_key(variant_id, level.location_id))]
    for level in held:
        if level.can_cover(quantity):
            return level

    available = max((level.quantity for level in held), default=0)
    raise InsufficientStock(variant_id, None, quantity, available)


def snapshot_address(address_type, fields) -> OrderAddress:
    return OrderAddress(address_type=address_type, **fields)


@commerce.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(Cart)
        order_repo = current_domain.repository_for(Order)
        inventory_repo = current_domain.repository_for(InventoryLevel)
        discount_repo = current_domain.repository_for(Discount)

        cart = cart_repo.get(command.cart_id)
        if not cart.is_open or order_repo.for_cart(cart.id) is not None:
            raise CartAlreadyOrdered(cart.id, cart.order_id)
        if not cart.items:
            raise EmptyCart(cart.id)

        # Stock: decrement in memory, persist only after every check passes
        catalog = get_catalog()
        unit_taxes = {str(k): v for k, v in _loads(command.unit_tax_amounts, {}).items()}
        lines, levels = [], []
        for item in sorted(cart.items, key=lambda i: str(i.variant_id)):
            variant = catalog.get_variant(item.variant_id)
            level = choose_level(inventory_repo, item.variant_id, item.quantity, command.location_id)
            level.reserve(item.quantity)
            levels.append(level)
            lines.append(
                PricedLine(
                    variant=variant,
                    quantity=item.quantity,
                    location_id=level.location_id,
                    unit_tax=to_money(unit_taxes.get(str(item.variant_id))) if variant.taxable else to_money(0),
                )
            )

        discounts = []
        for code in unique_codes(_loads(command.discount_codes, [])):
            discount = discount_repo.by_code(code)
            if discount is None:
                raise NotFound("Discount", code)
            discounts.append(discount)

        plan = price_order(lines, discounts, command.shipping_price or 0)

        line_items = {
            line: LineItem(
                variant_id=line.variant.id,
                product_id=line.variant.product_id,
                location_id=line.location_id,
                title=line.variant.title,
                sku=line.variant.sku,
                quantity=line.quantity,
                unit_price=as_float(line.unit_price),
                unit_tax_amount=as_float(line.unit_tax),
                total_discount=as_float(line.discount),
                total_price=as_float(line.total),
            )
            for line in plan.lines
        }
        allocations = [
            DiscountAllocation(
                discount_id=str(allocation.discount.id),
                code=allocation.discount.code,
                application=allocation.discount.application,
                line_item_id=str(line_items[allocation.line].id) if allocation.line else None,
                amount=as_float(allocation.amount),
            )
            for allocation in plan.allocations
        ]

        addresses = [snapshot_address(AddressType.BILLING.value, _loads(command.billing_address, {}))]
        if command.shipping_address:
            addresses.append(snapshot_address(AddressType.SHIPPING.value, _loads(command.shipping_address, {})))

        order = Order.place(
            cart_id=str(cart.id),
            customer_id=cart.customer_id,
            currency=(command.currency or DEFAULT_CURRENCY).upper(),
            line_items=list(line_items.values()),
            addresses=addresses,
            allocations=allocations,
            subtotal_price=as_float(plan.subtotal),
            total_discounts=as_float(plan.total_discounts),
            total_tax=as_float(plan.total_tax),
            shipping_price=as_float(plan.shipping_price),
            total_price=as_float(plan.total_price),
            total_weight=float(plan.total_weight),
            notes=command.notes,
        )
        cart.mark_ordered(order.id)

        for level in levels:
            inventory_repo.add(level)
        order_repo.add(order)
        cart_repo.add(cart)

        return str(order.id)
