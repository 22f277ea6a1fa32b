"""Domain events for the Refund aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from commerce.domain import commerce


@commerce.event(part_of="Refund")
class RefundIssued:
    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    total = Float(required=True)
    item_count = Integer(required=True)
    restocked = Boolean(default=False)
    reason = Text()
    created_at = DateTime(required=True)


@commerce.event(part_of="Refund")
class RefundStatusChanged:
    refund_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
