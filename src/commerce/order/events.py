"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Order")
class OrderPlaced:
    """A cart was checked out into a new order."""

    order_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    customer_id = Identifier()
    currency = String(required=True)
    subtotal_price = Float(required=True)
    total_discounts = Float(required=True)
    total_tax = Float(required=True)
    shipping_price = Float(required=True)
    total_price = Float(required=True)
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderStatusChanged:
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@commerce.event(part_of="Order")
class OrderCancelled:
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = Text()
    cancelled_at = DateTime(required=True)
