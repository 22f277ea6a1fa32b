"""Payment recording: commands and handler.

A supplied idempotency key makes recording at-most-once: a replay returns the
row already stored under that key. A replay that carries a new status for a
still-PENDING row is a provider follow-up and settles that same row.
"""

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from commerce.domain import commerce
from commerce.errors import IdempotencyKeyConflict, NotFound
from commerce.order.order import Order
from commerce.payment.transaction import PaymentKind, PaymentStatus, PaymentTransaction
from commerce.shared.choices import normalize_choice
from commerce.shared.money import DEFAULT_CURRENCY


@commerce.command(part_of="PaymentTransaction")
class RecordPayment:
    order_id = Identifier(required=True)
    kind = String(required=True, max_length=15)
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    status = String(max_length=10, default=PaymentStatus.PENDING.value)
    idempotency_key = String(max_length=255)
    raw_payload = Text()
    payment_method_id = Identifier()


@commerce.command(part_of="PaymentTransaction")
class UpdatePaymentStatus:
    idempotency_key = String(required=True, max_length=255)
    status = String(required=True, max_length=10)
    raw_payload = Text()


@commerce.command_handler(part_of=PaymentTransaction)
class PaymentRecordingHandler:
    @handle(RecordPayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(PaymentTransaction)
        current_domain.repository_for(Order).get(command.order_id)

        kind = normalize_choice(PaymentKind, command.kind, "kind")
        status = normalize_choice(PaymentStatus, command.status or PaymentStatus.PENDING)

        if command.idempotency_key:
            existing = repo.by_idempotency_key(command.idempotency_key)
            if existing is not None:
                if str(existing.order_id) != str(command.order_id):
                    raise IdempotencyKeyConflict(command.idempotency_key, command.order_id, existing.order_id)
                if not existing.is_settled and existing.change_status(status, command.raw_payload):
                    repo.add(existing)
                return str(existing.id)

        transaction = PaymentTransaction.record(
            order_id=command.order_id,
            kind=kind,
            amount=command.amount,
            currency=(command.currency or DEFAULT_CURRENCY).upper(),
            status=status,
            idempotency_key=command.idempotency_key,
            raw_payload=command.raw_payload,
            payment_method_id=command.payment_method_id,
        )
        repo.add(transaction)
        return str(transaction.id)

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        repo = current_domain.repository_for(PaymentTransaction)
        transaction = repo.by_idempotency_key(command.idempotency_key)
        if transaction is None:
            raise NotFound("PaymentTransaction", command.idempotency_key)

        if transaction.change_status(normalize_choice(PaymentStatus, command.status), command.raw_payload):
            repo.add(transaction)
        return str(transaction.id)
