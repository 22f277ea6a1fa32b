"""Domain events for the Discount aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="Discount")
class DiscountCreated:
    discount_id = Identifier(required=True)
    code = String(required=True)
    application = String(required=True)
    method = String(required=True)
    value = Float(required=True)
    status = String(required=True)
    starts_at = DateTime()
    ends_at = DateTime()


@commerce.event(part_of="Discount")
class DiscountStatusChanged:
    discount_id = Identifier(required=True)
    code = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
