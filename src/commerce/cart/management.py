"""Cart management: cart creation command and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.domain import commerce


@commerce.command(part_of="Cart")
class CreateCart:
    """Open a new cart for a registered customer or a guest session."""

    customer_id = Identifier()  # Optional for guest carts
    session_id = String(max_length=255)


@commerce.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = Cart.create(
            customer_id=command.customer_id,
            session_id=command.session_id,
        )
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)
