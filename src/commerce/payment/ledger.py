"""Payment Ledger: idempotent recording of payment attempts.

Calls that carry an idempotency key hold that key's row lock while the
command runs, so concurrent attempts with one key have exactly one winner
and every loser reads back the winner's row.
"""

import json
from contextlib import nullcontext

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from commerce.errors import NotFound
from commerce.locking import get_row_locks, payment_key
from commerce.order.lifecycle import get_order
from commerce.payment.recording import RecordPayment, UpdatePaymentStatus
from commerce.payment.transaction import PaymentStatus, PaymentTransaction
from commerce.shared.money import DEFAULT_CURRENCY, VALID_CURRENCIES, to_money

logger = structlog.get_logger(__name__)


def _payload(raw_payload):
    if raw_payload is None or isinstance(raw_payload, str):
        return raw_payload
    return json.dumps(raw_payload, default=str)


def _hold(idempotency_key):
    if not idempotency_key:
        return nullcontext()
    return get_row_locks().hold(payment_key(idempotency_key))


def get_transaction(transaction_id) -> PaymentTransaction:
    try:
        return current_domain.repository_for(PaymentTransaction).get(str(transaction_id))
    except ObjectNotFoundError as exc:
        raise NotFound("PaymentTransaction", transaction_id) from exc


def transactions_for(order_id) -> list[PaymentTransaction]:
    return current_domain.repository_for(PaymentTransaction).for_order(order_id)


def record(
    order_id,
    kind,
    amount,
    currency=DEFAULT_CURRENCY,
    idempotency_key=None,
    raw_payload=None,
    status=PaymentStatus.PENDING.value,
    payment_method_id=None,
) -> PaymentTransaction:
    """Record a payment attempt, or return the one already stored under ``idempotency_key``."""
    amount = to_money(amount)
    if amount < 0:
        raise ValidationError({"amount": ["Payment amount cannot be negative"]})
    currency = str(currency or DEFAULT_CURRENCY).upper()
    if currency not in VALID_CURRENCIES:
        raise ValidationError({"currency": [f"Unsupported currency {currency}"]})
    get_order(order_id)

    with _hold(idempotency_key):
        transaction_id = current_domain.process(
            RecordPayment(
                order_id=str(order_id),
                kind=str(getattr(kind, "value", kind)),
                amount=float(amount),
                currency=currency,
                status=str(getattr(status, "value", status)),
                idempotency_key=idempotency_key,
                raw_payload=_payload(raw_payload),
                payment_method_id=payment_method_id,
            ),
            asynchronous=False,
        )

    transaction = get_transaction(transaction_id)
    logger.info(
        "Payment recorded",
        transaction_id=transaction_id,
        order_id=str(order_id),
        kind=transaction.kind,
        status=transaction.status,
        idempotency_key=idempotency_key,
    )
    return transaction


def update_status(idempotency_key, status, raw_payload=None) -> PaymentTransaction:
    """Settle the transaction stored under ``idempotency_key``."""
    with _hold(idempotency_key):
        transaction_id = current_domain.process(
            UpdatePaymentStatus(
                idempotency_key=idempotency_key,
                status=str(getattr(status, "value", status)),
                raw_payload=_payload(raw_payload),
            ),
            asynchronous=False,
        )

    transaction = get_transaction(transaction_id)
    logger.info(
        "Payment status updated",
        transaction_id=transaction_id,
        idempotency_key=idempotency_key,
        status=transaction.status,
    )
    return transaction
