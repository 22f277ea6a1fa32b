"""Order aggregate: the immutable record a checkout produces.

Line items, addresses and discount allocations are snapshots taken at
checkout. Nothing on them is edited afterwards; only the order's status moves,
along ``_VALID_TRANSITIONS``.

State Machine:
    PENDING → PROCESSING → COMPLETED → REFUNDED
    PENDING/PROCESSING → ON-HOLD → PROCESSING
    PENDING/PROCESSING/ON-HOLD → CANCELLED
    PENDING/PROCESSING → FAILED
    COMPLETED/CANCELLED/REFUNDED/FAILED → ARCHIVED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from commerce.domain import commerce
from commerce.errors import InvalidStatusTransition, NotFound
from commerce.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from commerce.shared.money import DEFAULT_CURRENCY


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    ON_HOLD = "ON-HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"
    ARCHIVED = "ARCHIVED"


class WeightUnit(Enum):
    G = "G"
    KG = "KG"
    LB = "LB"
    OZ = "OZ"


class AddressType(Enum):
    BILLING = "BILLING"
    SHIPPING = "SHIPPING"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.PROCESSING,
        OrderStatus.ON_HOLD,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.COMPLETED,
        OrderStatus.ON_HOLD,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.ON_HOLD: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: {OrderStatus.REFUNDED, OrderStatus.ARCHIVED},
    OrderStatus.CANCELLED: {OrderStatus.ARCHIVED},
    OrderStatus.REFUNDED: {OrderStatus.ARCHIVED},
    OrderStatus.FAILED: {OrderStatus.ARCHIVED},
    OrderStatus.ARCHIVED: set(),  # Terminal
}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.ON_HOLD}

# Orders in these states accept no further fulfillments
CLOSED_STATES = {OrderStatus.CANCELLED, OrderStatus.FAILED, OrderStatus.ARCHIVED}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@commerce.entity(part_of="Order")
class LineItem:
    variant_id = Identifier(required=True)
    product_id = Identifier()
    location_id = Identifier()  # Where the stock was reserved
    title = String(max_length=255)
    sku = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    unit_tax_amount = Float(default=0.0, min_value=0.0)
    total_discount = Float(default=0.0, min_value=0.0)
    total_price = Float(required=True, min_value=0.0)


@commerce.entity(part_of="Order")
class OrderAddress:
    address_type = String(required=True, max_length=10, choices=AddressType)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    company = String(max_length=255)
    phone = String(max_length=50)
    line1 = String(max_length=255)
    line2 = String(max_length=255)
    city = String(max_length=100)
    region = String(max_length=100)
    postal_code = String(max_length=20)
    country_code = String(max_length=2)


@commerce.entity(part_of="Order")
class DiscountAllocation:
    discount_id = Identifier(required=True)
    code = String(required=True, max_length=64)
    application = String(required=True, max_length=15)
    line_item_id = Identifier()  # Only for LINE_ITEM allocations
    amount = Float(required=True, min_value=0.0)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@commerce.aggregate
class Order:
    cart_id = Identifier(required=True)
    customer_id = Identifier()
    status = String(max_length=15, choices=OrderStatus, default=OrderStatus.PENDING.value)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    subtotal_price = Float(default=0.0, min_value=0.0)
    total_discounts = Float(default=0.0, min_value=0.0)
    total_tax = Float(default=0.0, min_value=0.0)
    shipping_price = Float(default=0.0, min_value=0.0)
    total_price = Float(default=0.0, min_value=0.0)
    total_weight = Float(default=0.0, min_value=0.0)
    total_weight_unit = String(max_length=2, choices=WeightUnit, default=WeightUnit.G.value)
    notes = Text()
    cancel_reason = Text()
    line_items = HasMany(LineItem)
    addresses = HasMany(OrderAddress)
    allocations = HasMany(DiscountAllocation)
    placed_at = DateTime()
    updated_at = DateTime()
    cancelled_at = DateTime()

    @invariant.post
    def addresses_must_be_unique_per_type(self):
        types = [address.address_type for address in self.addresses]
        if len(types) != len(set(types)):
            raise ValidationError({"addresses": ["An order holds at most one address per type"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        cart_id,
        customer_id,
        currency,
        line_items,
        addresses,
        allocations,
        subtotal_price,
        total_discounts,
        total_tax,
        shipping_price,
        total_price,
        total_weight,
        notes=None,
    ):
        now = datetime.now(UTC)
        order = cls(
            cart_id=cart_id,
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            currency=currency,
            subtotal_price=subtotal_price,
            total_discounts=total_discounts,
            total_tax=total_tax,
            shipping_price=shipping_price,
            total_price=total_price,
            total_weight=total_weight,
            total_weight_unit=WeightUnit.G.value,
            notes=notes,
            line_items=line_items,
            addresses=addresses,
            allocations=allocations,
            placed_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                cart_id=str(cart_id),
                customer_id=str(customer_id) if customer_id else None,
                currency=currency,
                subtotal_price=subtotal_price,
                total_discounts=total_discounts,
                total_tax=total_tax,
                shipping_price=shipping_price,
                total_price=total_price,
                item_count=sum(item.quantity for item in line_items),
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_item(self, line_item_id) -> LineItem:
        item = next((i for i in self.line_items if str(i.id) == str(line_item_id)), None)
        if item is None:
            raise NotFound("LineItem", line_item_id)
        return item

    def address(self, address_type) -> OrderAddress | None:
        return next((a for a in self.addresses if a.address_type == address_type), None)

    @property
    def is_closed(self) -> bool:
        return OrderStatus(self.status) in CLOSED_STATES

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def change_status(self, target):
        """Move along the transition map. Re-applying the current status is a no-op."""
        current = OrderStatus(self.status)
        target = OrderStatus(target)
        if target == current:
            return
        if target == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Use cancel() so reserved stock is released"]})
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition("Order", self.id, current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    def cancel(self, reason=None):
        current = OrderStatus(self.status)
        if current not in _CANCELLABLE_STATES:
            raise InvalidStatusTransition("Order", self.id, current.value, OrderStatus.CANCELLED.value)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancel_reason = reason
        self.cancelled_at = now
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                previous_status=current.value,
                reason=reason,
                cancelled_at=now,
            )
        )


@commerce.repository(part_of=Order)
class OrderRepository:
    def for_cart(self, cart_id) -> Order | None:
        """The order a cart was checked out into, if any."""
        matches = self._dao.query.filter(cart_id=str(cart_id)).all().items
        return matches[0] if matches else None
