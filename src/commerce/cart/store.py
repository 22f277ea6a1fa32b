"""Cart Store: the entry points callers use to read and mutate carts.

Each mutation holds the cart's row lock while its command is processed, so
the OPEN check inside the handler and the write that follows it cannot
interleave with a concurrent checkout of the same cart.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.cart.cart import Cart
from commerce.cart.items import AddCartItem, MoveCartItem, RemoveCartItem, UpdateCartItem
from commerce.cart.management import CreateCart
from commerce.errors import NotFound
from commerce.locking import cart_key, get_row_locks

logger = structlog.get_logger(__name__)


def get_cart(cart_id) -> Cart:
    try:
        return current_domain.repository_for(Cart).get(str(cart_id))
    except ObjectNotFoundError as exc:
        if isinstance(exc, NotFound):
            raise
        raise NotFound("Cart", cart_id) from exc


def _process_locked(command, *cart_ids):
    # Missing carts surface as NotFound, not as Protean's bare lookup error
    for cart_id in cart_ids:
        get_cart(cart_id)
    with get_row_locks().hold(*(cart_key(cart_id) for cart_id in cart_ids)):
        return current_domain.process(command, asynchronous=False)


def create_cart(customer_id=None, session_id=None) -> str:
    cart_id = current_domain.process(
        CreateCart(customer_id=customer_id, session_id=session_id),
        asynchronous=False,
    )
    logger.info("Cart created", cart_id=cart_id, customer_id=customer_id)
    return cart_id


def add_item(cart_id, variant_id, quantity) -> str:
    """Add ``quantity`` of ``variant_id`` to an open cart. Returns the new item id."""
    item_id = _process_locked(
        AddCartItem(cart_id=str(cart_id), variant_id=str(variant_id), quantity=quantity),
        cart_id,
    )
    logger.info("Cart item added", cart_id=str(cart_id), variant_id=str(variant_id), quantity=quantity)
    return item_id


def update_item(cart_id, item_id, quantity) -> None:
    _process_locked(
        UpdateCartItem(cart_id=str(cart_id), item_id=str(item_id), quantity=quantity),
        cart_id,
    )
    logger.info("Cart item updated", cart_id=str(cart_id), item_id=str(item_id), quantity=quantity)


def remove_item(cart_id, item_id) -> None:
    _process_locked(RemoveCartItem(cart_id=str(cart_id), item_id=str(item_id)), cart_id)
    logger.info("Cart item removed", cart_id=str(cart_id), item_id=str(item_id))


def move_item(source_cart_id, item_id, destination_cart_id) -> str:
    """Move an item between two open carts. Both carts are locked in key order."""
    moved_id = _process_locked(
        MoveCartItem(
            cart_id=str(source_cart_id),
            item_id=str(item_id),
            destination_cart_id=str(destination_cart_id),
        ),
        source_cart_id,
        destination_cart_id,
    )
    logger.info(
        "Cart item moved",
        source_cart_id=str(source_cart_id),
        destination_cart_id=str(destination_cart_id),
        item_id=str(item_id),
        new_item_id=moved_id,
    )
    return moved_id
