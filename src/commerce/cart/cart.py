"""Cart aggregate: the mutable pre-purchase container.

A cart is OPEN until checkout flips it to ORDERED, exactly once. Items are
writable only while the cart is OPEN; every mutation checks that first and
bumps ``updated_at``. The check runs inside the command handler, which the
store facade only dispatches while holding the cart's row lock.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from commerce.cart.events import (
    CartCreated,
    CartItemAdded,
    CartItemMoved,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartOrdered,
)
from commerce.domain import commerce
from commerce.errors import CartAlreadyOrdered, CartNotOpen, DuplicateVariant, EmptyCart, NotFound


class CartStatus(Enum):
    OPEN = "OPEN"
    ORDERED = "ORDERED"


@commerce.entity(part_of="Cart")
class CartItem:
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    created_at = DateTime()
    updated_at = DateTime()


def _check_quantity(quantity):
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be a positive integer"]})


@commerce.aggregate
class Cart:
    customer_id = Identifier()  # Nullable for guest carts
    session_id = String(max_length=255)
    status = String(max_length=15, choices=CartStatus, default=CartStatus.OPEN.value)
    order_id = Identifier()
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def ordered_cart_must_reference_its_order(self):
        if self.status == CartStatus.ORDERED.value and not self.order_id:
            raise ValidationError({"order_id": ["An ordered cart must reference its order"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, session_id=None):
        now = datetime.now(UTC)
        cart = cls(
            customer_id=customer_id,
            session_id=session_id,
            status=CartStatus.OPEN.value,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(
            CartCreated(
                cart_id=str(cart.id),
                customer_id=str(customer_id) if customer_id else None,
                session_id=session_id,
                created_at=now,
            )
        )
        return cart

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_open(self) -> bool:
        return CartStatus(self.status) == CartStatus.OPEN

    def assert_open(self):
        """The write-guard: items are read-only unless the cart is OPEN."""
        if not self.is_open:
            raise CartNotOpen(self.id, self.status)

    def find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise NotFound("CartItem", item_id)
        return item

    def item_for_variant(self, variant_id):
        return next((i for i in self.items if str(i.variant_id) == str(variant_id)), None)

    def _touch(self):
        now = datetime.now(UTC)
        self.updated_at = now
        return now

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, variant_id, quantity):
        """Add a new line for ``variant_id``. A variant appears at most once per cart."""
        self.assert_open()
        _check_quantity(quantity)
        if self.item_for_variant(variant_id) is not None:
            raise DuplicateVariant(self.id, variant_id)

        now = self._touch()
        item = CartItem(variant_id=variant_id, quantity=quantity, created_at=now, updated_at=now)
        self.add_items(item)

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                variant_id=str(variant_id),
                quantity=quantity,
            )
        )
        return item

    def update_item(self, item_id, quantity):
        """Set the quantity of an existing item."""
        self.assert_open()
        _check_quantity(quantity)
        item = self.find_item(item_id)

        previous_quantity = item.quantity
        now = self._touch()
        item.quantity = quantity
        item.updated_at = now

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item.id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )
        return item

    def remove_item(self, item_id):
        self.assert_open()
        item = self.find_item(item_id)

        self.remove_items(item)
        self._touch()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item.id),
                variant_id=str(item.variant_id),
            )
        )

    def move_item_to(self, item_id, destination):
        """Move an item into ``destination``.

        Every precondition is checked before either cart changes, so a rejected
        move leaves both carts as they were.
        """
        if str(destination.id) == str(self.id):
            raise ValidationError({"destination_cart_id": ["Source and destination carts must differ"]})

        self.assert_open()
        destination.assert_open()
        item = self.find_item(item_id)
        if destination.item_for_variant(item.variant_id) is not None:
            raise DuplicateVariant(destination.id, item.variant_id)

        moved = destination.add_item(item.variant_id, item.quantity)
        self.remove_items(item)
        self._touch()

        self.raise_(
            CartItemMoved(
                cart_id=str(self.id),
                item_id=str(item.id),
                variant_id=str(item.variant_id),
                quantity=item.quantity,
                destination_cart_id=str(destination.id),
            )
        )
        return moved

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def mark_ordered(self, order_id):
        """OPEN → ORDERED. Never reverses."""
        if not self.is_open:
            raise CartAlreadyOrdered(self.id, self.order_id)
        if not self.items:
            raise EmptyCart(self.id)

        # order_id first so the invariant holds at every step
        self.order_id = order_id
        self.status = CartStatus.ORDERED.value
        now = self._touch()

        self.raise_(
            CartOrdered(
                cart_id=str(self.id),
                order_id=str(order_id),
                ordered_at=now,
            )
        )
