"""Refund aggregate: money (and optionally stock) returned for order lines.

State Machine:
    PENDING → PROCESSING → COMPLETED
    PENDING/PROCESSING → CANCELLED / FAILED
    PENDING → COMPLETED
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from commerce.domain import commerce
from commerce.errors import InvalidStatusTransition
from commerce.refund.events import RefundIssued, RefundStatusChanged
from commerce.shared.money import as_float, money_sum


class RefundStatus(Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"


_VALID_TRANSITIONS = {
    RefundStatus.PENDING: {
        RefundStatus.PROCESSING,
        RefundStatus.COMPLETED,
        RefundStatus.CANCELLED,
        RefundStatus.FAILED,
    },
    RefundStatus.PROCESSING: {RefundStatus.COMPLETED, RefundStatus.CANCELLED, RefundStatus.FAILED},
    RefundStatus.COMPLETED: set(),  # Terminal
    RefundStatus.CANCELLED: set(),  # Terminal
    RefundStatus.FAILED: set(),  # Terminal
}

RELEASED_STATES = {RefundStatus.CANCELLED, RefundStatus.FAILED}


@commerce.entity(part_of="Refund")
class RefundLine:
    line_item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    amount = Float(required=True, min_value=0.0)


@commerce.aggregate
class Refund:
    order_id = Identifier(required=True)
    reason = Text()
    total = Float(default=0.0, min_value=0.0)
    status = String(max_length=15, choices=RefundStatus, default=RefundStatus.PENDING.value)
    restocked = Boolean(default=False)
    lines = HasMany(RefundLine)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def issue(cls, order_id, lines, reason=None, restocked=False):
        """``lines`` is a list of ``(line_item_id, quantity, amount)``."""
        now = datetime.now(UTC)
        total = money_sum(amount for _, _, amount in lines)
        refund = cls(
            order_id=order_id,
            reason=reason,
            total=as_float(total),
            status=RefundStatus.PENDING.value,
            restocked=restocked,
            lines=[
                RefundLine(line_item_id=line_item_id, quantity=quantity, amount=as_float(amount))
                for line_item_id, quantity, amount in lines
            ],
            created_at=now,
            updated_at=now,
        )
        refund.raise_(
            RefundIssued(
                refund_id=str(refund.id),
                order_id=str(order_id),
                total=as_float(total),
                item_count=sum(quantity for _, quantity, _ in lines),
                restocked=restocked,
                reason=reason,
                created_at=now,
            )
        )
        return refund

    @property
    def counts_toward_cap(self) -> bool:
        return RefundStatus(self.status) not in RELEASED_STATES

    def change_status(self, target):
        current = RefundStatus(self.status)
        target = RefundStatus(target)
        if target == current:
            return
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition("Refund", self.id, current.value, target.value)

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            RefundStatusChanged(
                refund_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )


@commerce.repository(part_of=Refund)
class RefundRepository:
    def for_order(self, order_id) -> list[Refund]:
        refunds = self._dao.query.filter(order_id=str(order_id)).all().items
        return sorted(refunds, key=lambda r: r.created_at)
