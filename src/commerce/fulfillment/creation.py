"""Fulfillment creation: command and handler."""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import InvalidStatusTransition
from commerce.fulfillment.fulfillment import Fulfillment
from commerce.order.caps import check_caps, normalize_lines, tally
from commerce.order.order import Order


@commerce.command(part_of="Fulfillment")
class CreateFulfillment:
    order_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: {line_item_id: quantity}
    shipping_carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1024)


@commerce.command_handler(part_of=Fulfillment)
class CreateFulfillmentHandler:
    @handle(CreateFulfillment)
    def create_fulfillment(self, command):
        order = current_domain.repository_for(Order).get(command.order_id)
        if order.is_closed:
            raise InvalidStatusTransition("Order", order.id, order.status, "FULFILLED")

        repo = current_domain.repository_for(Fulfillment)
        lines = normalize_lines(json.loads(command.lines))
        live = [f for f in repo.for_order(order.id) if f.counts_toward_cap]
        check_caps(order, lines, tally(live))

        fulfillment = Fulfillment.create(
            order_id=str(order.id),
            lines=lines,
            shipping_carrier=command.shipping_carrier,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
        )
        repo.add(fulfillment)
        return str(fulfillment.id)
