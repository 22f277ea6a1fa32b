"""Cart item management: commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.catalog import get_catalog
from commerce.domain import commerce


@commerce.command(part_of="Cart")
class AddCartItem:
    cart_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="Cart")
class UpdateCartItem:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.command(part_of="Cart")
class RemoveCartItem:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@commerce.command(part_of="Cart")
class MoveCartItem:
    """Move one item from a source cart into another open cart."""

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    destination_cart_id = Identifier(required=True)


@commerce.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.assert_open()

        # Unknown variants are rejected before the cart changes
        get_catalog().get_variant(command.variant_id)

        item = cart.add_item(variant_id=command.variant_id, quantity=command.quantity)
        repo.add(cart)
        return str(item.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.update_item(item_id=command.item_id, quantity=command.quantity)
        repo.add(cart)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)

    @handle(MoveCartItem)
    def move_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        source = repo.get(command.cart_id)
        destination = repo.get(command.destination_cart_id)

        moved = source.move_item_to(command.item_id, destination)
        repo.add(source)
        repo.add(destination)
        return str(moved.id)
