"""Checkout Orchestrator: the entry point that turns a cart into an order.

Locks are taken cart first, then every inventory level the cart could draw
from, in key order. The PlaceOrder command runs, and commits, while both are
held. A second checkout of the same cart waits on the cart lock and then finds
the cart ORDERED.
"""

import json
from collections.abc import Mapping

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from commerce.addressbook import ADDRESS_FIELDS, get_address_book
from commerce.cart.store import get_cart
from commerce.checkout.placement import PlaceOrder, unique_codes
from commerce.errors import CartAlreadyOrdered, CommerceError, EmptyCart
from commerce.inventory.ledger import levels_for
from commerce.locking import cart_key, get_row_locks, inventory_key
from commerce.shared.money import DEFAULT_CURRENCY, VALID_CURRENCIES, as_float, to_money

logger = structlog.get_logger(__name__)


def resolve_address(address, field="address") -> dict:
    """Copy an address given inline or as an address-book id."""
    if isinstance(address, Mapping):
        unknown = sorted(set(address) - set(ADDRESS_FIELDS))
        if unknown:
            raise ValidationError({field: [f"Unknown address fields: {', '.join(unknown)}"]})
        return {key: (str(address[key]) if address.get(key) is not None else None) for key in ADDRESS_FIELDS}
    return get_address_book().get_address(str(address))


def _inventory_keys(cart, location_id):
    keys = []
    for item in cart.items:
        if location_id:
            keys.append(inventory_key(item.variant_id, location_id))
        else:
            keys.extend(inventory_key(item.variant_id, level.location_id) for level in levels_for(item.variant_id))
    return keys


def checkout(
    cart_id,
    billing_address,
    shipping_address=None,
    discount_codes=(),
    shipping_price=0,
    unit_tax_amounts=None,
    currency=DEFAULT_CURRENCY,
    location_id=None,
    notes=None,
) -> str:
    """Place an order for an open cart and return the new order's id.

    Raises:
        CartAlreadyOrdered: the cart was already checked out.
        EmptyCart: the cart has no items.
        InsufficientStock: a line cannot be covered; nothing is reserved.
        NotFound: unknown cart, variant, discount code or address id.
        DiscountNotActive: a supplied code is inactive or out of its window.
        LockTimeout: the rows stayed locked past the retry budget.
    """
    if not billing_address:
        raise ValidationError({"billing_address": ["A billing address is required"]})
    currency = str(currency or DEFAULT_CURRENCY).upper()
    if currency not in VALID_CURRENCIES:
        raise ValidationError({"currency": [f"Unsupported currency {currency}"]})

    billing = resolve_address(billing_address, "billing_address")
    shipping = resolve_address(shipping_address, "shipping_address") if shipping_address else None
    unit_taxes = {str(k): str(to_money(v)) for k, v in (unit_tax_amounts or {}).items()}

    command = PlaceOrder(
        cart_id=str(cart_id),
        billing_address=json.dumps(billing),
        shipping_address=json.dumps(shipping) if shipping else None,
        discount_codes=json.dumps(unique_codes(discount_codes)),
        unit_tax_amounts=json.dumps(unit_taxes),
        shipping_price=as_float(shipping_price),
        currency=currency,
        location_id=location_id,
        notes=notes,
    )

    get_cart(cart_id)
    locks = get_row_locks()
    try:
        with locks.hold(cart_key(cart_id)):
            cart = get_cart(cart_id)
            if not cart.is_open:
                raise CartAlreadyOrdered(cart.id, cart.order_id)
            if not cart.items:
                raise EmptyCart(cart.id)

            with locks.hold(*_inventory_keys(cart, location_id)):
                order_id = current_domain.process(command, asynchronous=False)
    except CommerceError as exc:
        logger.warning("Checkout rejected", error=exc.__class__.__name__, **{"cart_id": str(cart_id), **exc.context})
        raise

    logger.info("Order placed", order_id=order_id, cart_id=str(cart_id), currency=currency)
    return order_id
