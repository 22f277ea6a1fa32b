"""Fulfillment Tracker: entry points for shipments against an order.

Creating a fulfillment and changing its status both hold the order's row
lock, so the per-line cap check always sees every other live fulfillment.
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.errors import NotFound
from commerce.fulfillment.creation import CreateFulfillment
from commerce.fulfillment.fulfillment import Fulfillment
from commerce.fulfillment.tracking import ChangeFulfillmentStatus, UpdateTracking
from commerce.locking import get_row_locks, order_key
from commerce.order.lifecycle import get_order

logger = structlog.get_logger(__name__)


def get_fulfillment(fulfillment_id) -> Fulfillment:
    try:
        return current_domain.repository_for(Fulfillment).get(str(fulfillment_id))
    except ObjectNotFoundError as exc:
        raise NotFound("Fulfillment", fulfillment_id) from exc


def fulfillments_for(order_id) -> list[Fulfillment]:
    return current_domain.repository_for(Fulfillment).for_order(order_id)


def create_fulfillment(order_id, lines, shipping_carrier=None, tracking_number=None, tracking_url=None) -> str:
    """Ship ``lines`` (``{line_item_id: quantity}``) of an order. Returns the fulfillment id."""
    get_order(order_id)
    with get_row_locks().hold(order_key(order_id)):
        fulfillment_id = current_domain.process(
            CreateFulfillment(
                order_id=str(order_id),
                lines=json.dumps({str(k): v for k, v in dict(lines or {}).items()}),
                shipping_carrier=shipping_carrier,
                tracking_number=tracking_number,
                tracking_url=tracking_url,
            ),
            asynchronous=False,
        )
    logger.info("Fulfillment created", fulfillment_id=fulfillment_id, order_id=str(order_id))
    return fulfillment_id


def change_fulfillment_status(fulfillment_id, status) -> None:
    fulfillment = get_fulfillment(fulfillment_id)
    with get_row_locks().hold(order_key(fulfillment.order_id)):
        current_domain.process(
            ChangeFulfillmentStatus(fulfillment_id=str(fulfillment_id), status=str(getattr(status, "value", status))),
            asynchronous=False,
        )
    logger.info("Fulfillment status changed", fulfillment_id=str(fulfillment_id), status=str(status))


def update_tracking(fulfillment_id, shipping_carrier=None, tracking_number=None, tracking_url=None) -> None:
    get_fulfillment(fulfillment_id)
    current_domain.process(
        UpdateTracking(
            fulfillment_id=str(fulfillment_id),
            shipping_carrier=shipping_carrier,
            tracking_number=tracking_number,
            tracking_url=tracking_url,
        ),
        asynchronous=False,
    )
    logger.info("Fulfillment tracking updated", fulfillment_id=str(fulfillment_id), tracking_number=tracking_number)
