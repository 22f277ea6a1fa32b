"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Cart")
class CartCreated:
    """A new cart was opened for a customer or guest session."""

    cart_id = Identifier(required=True)
    customer_id = Identifier()
    session_id = String(max_length=255)
    created_at = DateTime(required=True)


@commerce.event(part_of="Cart")
class CartItemAdded:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)


@commerce.event(part_of="Cart")
class CartItemQuantityUpdated:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@commerce.event(part_of="Cart")
class CartItemRemoved:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant_id = Identifier(required=True)


@commerce.event(part_of="Cart")
class CartItemMoved:
    """An item left this cart for another open cart."""

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    destination_cart_id = Identifier(required=True)


@commerce.event(part_of="Cart")
class CartOrdered:
    """The cart became an order. Terminal: the cart is read-only from now on."""

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    ordered_at = DateTime(required=True)
