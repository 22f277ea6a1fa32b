"""Fulfillment aggregate: one shipment of some of an order's line items.

State Machine:
    PENDING → PROCESSING → COMPLETED → REFUNDED
    PENDING/PROCESSING → ON-HOLD → PROCESSING
    PENDING/PROCESSING/ON-HOLD → CANCELLED
    PENDING/PROCESSING → FAILED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, HasMany, Identifier, Integer, String

from commerce.domain import commerce
from commerce.errors import InvalidStatusTransition
from commerce.fulfillment.events import FulfillmentCreated, FulfillmentStatusChanged, TrackingUpdated


class FulfillmentStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    ON_HOLD = "ON-HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"
    FAILED = "FAILED"


_VALID_TRANSITIONS = {
    FulfillmentStatus.PENDING: {
        FulfillmentStatus.PROCESSING,
        FulfillmentStatus.ON_HOLD,
        FulfillmentStatus.CANCELLED,
        FulfillmentStatus.FAILED,
    },
    FulfillmentStatus.PROCESSING: {
        FulfillmentStatus.COMPLETED,
        FulfillmentStatus.ON_HOLD,
        FulfillmentStatus.CANCELLED,
        FulfillmentStatus.FAILED,
    },
    FulfillmentStatus.ON_HOLD: {FulfillmentStatus.PROCESSING, FulfillmentStatus.CANCELLED},
    FulfillmentStatus.COMPLETED: {FulfillmentStatus.REFUNDED},
    FulfillmentStatus.CANCELLED: set(),  # Terminal
    FulfillmentStatus.REFUNDED: set(),  # Terminal
    FulfillmentStatus.FAILED: set(),  # Terminal
}

# Fulfillments in these states no longer count toward a line's cap
RELEASED_STATES = {FulfillmentStatus.CANCELLED, FulfillmentStatus.FAILED}
SHIPPED_STATES = {FulfillmentStatus.COMPLETED, FulfillmentStatus.REFUNDED}


@commerce.entity(part_of="Fulfillment")
class FulfillmentLine:
    line_item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@commerce.aggregate
class Fulfillment:
    order_id = Identifier(required=True)
    status = String(max_length=15, choices=FulfillmentStatus, default=FulfillmentStatus.PENDING.value)
    shipping_carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1024)
    lines = HasMany(FulfillmentLine)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, order_id, lines, shipping_carrier=None, tracking_number=None, tracking_url=None):
        now = datetime.now(UTC)
        fulfillment = cls(
            order_id=order_id,
            status=FulfillmentStatus.PENDING.value,
            shipping_carrier=shipping_carrier,
            tracking_number=tracking_number,
            tracking_url=tracking_url,
            lines=[FulfillmentLine(line_item_id=key, quantity=qty) for key, qty in lines.items()],
            created_at=now,
            updated_at=now,
        )
        fulfillment.raise_(
            FulfillmentCreated(
                fulfillment_id=str(fulfillment.id),
                order_id=str(order_id),
                line_count=len(lines),
                item_count=sum(lines.values()),
                created_at=now,
            )
        )
        return fulfillment

    @property
    def counts_toward_cap(self) -> bool:
        return FulfillmentStatus(self.status) not in RELEASED_STATES

    @property
    def is_shipped(self) -> bool:
        return FulfillmentStatus(self.status) in SHIPPED_STATES

    def change_status(self, target):
        current = FulfillmentStatus(self.status)
        target = FulfillmentStatus(target)
        if target == current:
            return
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition("Fulfillment", self.id, current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            FulfillmentStatusChanged(
                fulfillment_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    def update_tracking(self, shipping_carrier=None, tracking_number=None, tracking_url=None):
        """Overwrite whichever tracking fields are given."""
        if shipping_carrier is not None:
            self.shipping_carrier = shipping_carrier
        if tracking_number is not None:
            self.tracking_number = tracking_number
        if tracking_url is not None:
            self.tracking_url = tracking_url
        self.updated_at = datetime.now(UTC)

        self.raise_(
            TrackingUpdated(
                fulfillment_id=str(self.id),
                order_id=str(self.order_id),
                shipping_carrier=self.shipping_carrier,
                tracking_number=self.tracking_number,
                tracking_url=self.tracking_url,
            )
        )


@commerce.repository(part_of=Fulfillment)
class FulfillmentRepository:
    def for_order(self, order_id) -> list[Fulfillment]:
        fulfillments = self._dao.query.filter(order_id=str(order_id)).all().items
        return sorted(fulfillments, key=lambda f: f.created_at)
