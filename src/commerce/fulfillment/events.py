"""Domain events for the Fulfillment aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from commerce.domain import commerce


@commerce.event(part_of="Fulfillment")
class FulfillmentCreated:
    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    line_count = Integer(required=True)
    item_count = Integer(required=True)
    created_at = DateTime(required=True)


@commerce.event(part_of="Fulfillment")
class FulfillmentStatusChanged:
    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@commerce.event(part_of="Fulfillment")
class TrackingUpdated:
    fulfillment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    shipping_carrier = String()
    tracking_number = String()
    tracking_url = String()
