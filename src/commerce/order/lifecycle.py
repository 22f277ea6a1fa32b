"""Order lifecycle: status changes and cancellation.

Cancelling gives each line's still-reserved quantity back to the inventory
level it was reserved from, in the same unit of work as the status change.
Units already restocked by a refund or shipped by a completed fulfillment
stay where they are.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import NotFound
from commerce.fulfillment.fulfillment import Fulfillment
from commerce.inventory.level import InventoryLevel
from commerce.inventory.reservation import load_level
from commerce.locking import get_row_locks, inventory_key, order_key
from commerce.order.caps import still_reserved
from commerce.order.order import Order, OrderStatus
from commerce.refund.refund import Refund
from commerce.shared.choices import normalize_choice

logger = structlog.get_logger(__name__)


@commerce.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=15)


@commerce.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = Text()


@commerce.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(ChangeOrderStatus)
    def change_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.change_status(normalize_choice(OrderStatus, command.status))
        repo.add(order)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        inventory_repo = current_domain.repository_for(InventoryLevel)
        order = repo.get(command.order_id)
        order.cancel(command.reason)

        reserved = still_reserved(
            order,
            current_domain.repository_for(Refund).for_order(order.id),
            current_domain.repository_for(Fulfillment).for_order(order.id),
        )
        levels = []
        for line in order.line_items:
            quantity = reserved[str(line.id)]
            if quantity == 0:
                continue
            level = load_level(inventory_repo, line.variant_id, line.location_id)
            level.release(quantity)
            levels.append(level)

        for level in levels:
            inventory_repo.add(level)
        repo.add(order)


def get_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError as exc:
        if isinstance(exc, NotFound):
            raise
        raise NotFound("Order", order_id) from exc


def change_order_status(order_id, status) -> None:
    """Move an order to ``status``. CANCELLED goes through ``cancel_order``."""
    target = normalize_choice(OrderStatus, status)
    if target == OrderStatus.CANCELLED.value:
        cancel_order(order_id)
        return

    get_order(order_id)
    with get_row_locks().hold(order_key(order_id)):
        current_domain.process(
            ChangeOrderStatus(order_id=str(order_id), status=target),
            asynchronous=False,
        )
    logger.info("Order status changed", order_id=str(order_id), status=target)


def cancel_order(order_id, reason=None) -> None:
    order = get_order(order_id)
    keys = [order_key(order_id)]
    keys.extend(inventory_key(line.variant_id, line.location_id) for line in order.line_items)

    with get_row_locks().hold(*keys):
        current_domain.process(
            CancelOrder(order_id=str(order_id), reason=reason),
            asynchronous=False,
        )
    logger.info("Order cancelled", order_id=str(order_id), reason=reason, lines=len(order.line_items))
