"""Error taxonomy for the commerce core.

Business-rule failures subclass Protean's ``ValidationError`` so they carry the
usual ``messages`` dict. Each one also keeps a ``context`` dict with the
identifiers a caller needs to decide between retrying and giving up.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class CommerceError(ValidationError):
    """Base class for recoverable business-rule failures."""

    key = "error"

    def __init__(self, message, **context):
        self.context = context
        self.message = message
        super().__init__({self.key: [message]})

    def __str__(self):
        return self.message


class CartNotOpen(CommerceError):
    key = "status"

    def __init__(self, cart_id, status):
        super().__init__(
            f"Cart {cart_id} is {status}; cart items are read-only",
            cart_id=str(cart_id),
            status=status,
        )


class CartAlreadyOrdered(CommerceError):
    key = "status"

    def __init__(self, cart_id, order_id=None):
        super().__init__(
            f"Cart {cart_id} has already been ordered",
            cart_id=str(cart_id),
            order_id=str(order_id) if order_id else None,
        )


class DuplicateVariant(CommerceError):
    key = "variant_id"

    def __init__(self, cart_id, variant_id):
        super().__init__(
            f"Cart {cart_id} already holds variant {variant_id}; update its quantity instead",
            cart_id=str(cart_id),
            variant_id=str(variant_id),
        )


class EmptyCart(CommerceError):
    key = "items"

    def __init__(self, cart_id):
        super().__init__(f"Cart {cart_id} has no items", cart_id=str(cart_id))


class InsufficientStock(CommerceError):
    key = "quantity"

    def __init__(self, variant_id, location_id, requested, available):
        super().__init__(
            f"Insufficient stock for variant {variant_id}: {available} available, {requested} requested",
            variant_id=str(variant_id),
            location_id=str(location_id) if location_id else None,
            requested=requested,
            available=available,
        )


class DiscountNotActive(CommerceError):
    key = "discount"

    def __init__(self, code, status, now=None):
        super().__init__(
            f"Discount {code} is not active ({status})",
            code=code,
            status=status,
            now=now.isoformat() if now else None,
        )


class DuplicateInventoryLevel(CommerceError):
    key = "location_id"

    def __init__(self, variant_id, location_id):
        super().__init__(
            f"Inventory level already exists for variant {variant_id} at location {location_id}",
            variant_id=str(variant_id),
            location_id=str(location_id) if location_id else None,
        )


class DuplicateDiscountCode(CommerceError):
    key = "code"

    def __init__(self, code):
        super().__init__(f"Discount code {code} already exists", code=code)


class IdempotencyKeyConflict(CommerceError):
    key = "idempotency_key"

    def __init__(self, idempotency_key, order_id, existing_order_id):
        super().__init__(
            f"Idempotency key {idempotency_key} already belongs to order {existing_order_id}",
            idempotency_key=idempotency_key,
            order_id=str(order_id),
            existing_order_id=str(existing_order_id),
        )


class QuantityExceeded(CommerceError):
    key = "quantity"

    def __init__(self, line_item_id, ordered, already, requested):
        super().__init__(
            f"Line item {line_item_id}: {requested} requested but only {ordered - already} of {ordered} remain",
            line_item_id=str(line_item_id),
            ordered=ordered,
            already=already,
            requested=requested,
        )


class StockAlreadyReleased(CommerceError):
    key = "restock"

    def __init__(self, order_id, line_item_id=None, released=None, requested=None):
        if line_item_id is None:
            message = f"Order {order_id} is cancelled; its stock has already been released"
        else:
            message = f"Line item {line_item_id}: {requested} to restock but {released} already went back to stock"
        super().__init__(
            message,
            order_id=str(order_id),
            line_item_id=str(line_item_id) if line_item_id else None,
            released=released,
            requested=requested,
        )


class RefundAmountExceeded(CommerceError):
    key = "amount"

    def __init__(self, line_item_id, remaining, requested):
        super().__init__(
            f"Line item {line_item_id}: refund of {requested} exceeds the {remaining} left to refund",
            line_item_id=str(line_item_id),
            remaining=str(remaining),
            requested=str(requested),
        )


class InvalidStatusTransition(CommerceError):
    key = "status"

    def __init__(self, kind, identifier, current, target):
        super().__init__(
            f"{kind} {identifier} cannot move from {current} to {target}",
            identifier=str(identifier),
            current=current,
            target=target,
        )


class NotFound(ObjectNotFoundError):
    """A referenced cart, order, variant or other record does not exist."""

    def __init__(self, kind, identifier):
        self.kind = kind
        self.identifier = identifier
        self.context = {"kind": kind, "identifier": str(identifier)}
        self.message = f"{kind} {identifier} does not exist"
        super().__init__({kind.lower(): [self.message]})

    def __str__(self):
        return self.message


class LockTimeout(TimeoutError):
    """Row locks could not be acquired within the retry budget. Transient."""

    def __init__(self, keys, attempts):
        self.keys = list(keys)
        self.attempts = attempts
        super().__init__(f"Could not lock {self.keys} after {attempts} attempts")
