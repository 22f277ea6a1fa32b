"""PaymentTransaction aggregate: one attempt against a payment provider.

Only the local ledger is kept here; the provider itself is never called.
A transaction starts PENDING (or directly in its final status when the
provider answered synchronously) and settles once:

    PENDING → SUCCESS / FAILURE / ERROR
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text

from commerce.domain import commerce
from commerce.errors import InvalidStatusTransition
from commerce.payment.events import PaymentRecorded, PaymentStatusChanged
from commerce.shared.money import DEFAULT_CURRENCY


class PaymentKind(Enum):
    AUTHORIZATION = "AUTHORIZATION"
    SALE = "SALE"
    CAPTURE = "CAPTURE"
    REFUND = "REFUND"
    VOID = "VOID"


class PaymentStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    ERROR = "ERROR"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.SUCCESS, PaymentStatus.FAILURE, PaymentStatus.ERROR},
    PaymentStatus.SUCCESS: set(),
    PaymentStatus.FAILURE: set(),
    PaymentStatus.ERROR: set(),
}


@commerce.aggregate
class PaymentTransaction:
    order_id = Identifier(required=True)
    payment_method_id = Identifier()
    amount = Float(required=True, min_value=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    kind = String(required=True, max_length=15, choices=PaymentKind)
    status = String(max_length=10, choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    idempotency_key = String(max_length=255)
    raw_payload = Text()  # JSON as received from the provider
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def record(
        cls,
        order_id,
        kind,
        amount,
        currency=DEFAULT_CURRENCY,
        status=PaymentStatus.PENDING.value,
        idempotency_key=None,
        raw_payload=None,
        payment_method_id=None,
    ):
        now = datetime.now(UTC)
        transaction = cls(
            order_id=order_id,
            payment_method_id=payment_method_id,
            amount=amount,
            currency=currency,
            kind=kind,
            status=status,
            idempotency_key=idempotency_key,
            raw_payload=raw_payload,
            created_at=now,
            updated_at=now,
        )
        transaction.raise_(
            PaymentRecorded(
                transaction_id=str(transaction.id),
                order_id=str(order_id),
                kind=kind,
                status=status,
                amount=amount,
                currency=currency,
                idempotency_key=idempotency_key,
                recorded_at=now,
            )
        )
        return transaction

    @property
    def is_settled(self) -> bool:
        return PaymentStatus(self.status) != PaymentStatus.PENDING

    def change_status(self, target, raw_payload=None) -> bool:
        """Settle the transaction. Returns False when ``target`` is already the status."""
        current = PaymentStatus(self.status)
        target = PaymentStatus(target)
        if target == current:
            return False
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidStatusTransition("PaymentTransaction", self.id, current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value
        if raw_payload is not None:
            self.raw_payload = raw_payload
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                transaction_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )
        return True


@commerce.repository(part_of=PaymentTransaction)
class PaymentTransactionRepository:
    def by_idempotency_key(self, idempotency_key) -> PaymentTransaction | None:
        matches = self._dao.query.filter(idempotency_key=str(idempotency_key)).all().items
        return matches[0] if matches else None

    def for_order(self, order_id) -> list[PaymentTransaction]:
        transactions = self._dao.query.filter(order_id=str(order_id)).all().items
        return sorted(transactions, key=lambda t: t.created_at)
