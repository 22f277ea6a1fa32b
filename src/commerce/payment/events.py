"""Domain events for the PaymentTransaction aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from commerce.domain import commerce


@commerce.event(part_of="PaymentTransaction")
class PaymentRecorded:
    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    kind = String(required=True)
    status = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    idempotency_key = String()
    recorded_at = DateTime(required=True)


@commerce.event(part_of="PaymentTransaction")
class PaymentStatusChanged:
    transaction_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
