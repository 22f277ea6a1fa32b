"""Refund Tracker: entry points for refunds against an order."""

import json

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from commerce.errors import NotFound
from commerce.locking import get_row_locks, inventory_key, order_key
from commerce.order.lifecycle import get_order
from commerce.refund.issuance import ChangeRefundStatus, IssueRefund
from commerce.refund.refund import Refund

logger = structlog.get_logger(__name__)


def get_refund(refund_id) -> Refund:
    try:
        return current_domain.repository_for(Refund).get(str(refund_id))
    except ObjectNotFoundError as exc:
        raise NotFound("Refund", refund_id) from exc


def refunds_for(order_id) -> list[Refund]:
    return current_domain.repository_for(Refund).for_order(order_id)


def issue_refund(order_id, lines, reason=None, restock=False, amounts=None) -> str:
    """Refund ``lines`` (``{line_item_id: quantity}``) of an order. Returns the refund id.

    ``amounts`` optionally overrides the pro-rata amount per line item.
    """
    order = get_order(order_id)
    lines = {str(k): v for k, v in dict(lines or {}).items()}

    keys = [order_key(order_id)]
    if restock:
        for line in order.line_items:
            if str(line.id) in lines:
                keys.append(inventory_key(line.variant_id, line.location_id))

    with get_row_locks().hold(*keys):
        refund_id = current_domain.process(
            IssueRefund(
                order_id=str(order_id),
                lines=json.dumps(lines),
                amounts=json.dumps({str(k): str(v) for k, v in amounts.items()}) if amounts else None,
                reason=reason,
                restock=restock,
            ),
            asynchronous=False,
        )
    logger.info("Refund issued", refund_id=refund_id, order_id=str(order_id), restock=restock)
    return refund_id


def change_refund_status(refund_id, status) -> None:
    refund = get_refund(refund_id)
    with get_row_locks().hold(order_key(refund.order_id)):
        current_domain.process(
            ChangeRefundStatus(refund_id=str(refund_id), status=str(getattr(status, "value", status))),
            asynchronous=False,
        )
    logger.info("Refund status changed", refund_id=str(refund_id), status=str(status))
