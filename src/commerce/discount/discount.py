"""Discount aggregate: a named rule that produces allocations at checkout."""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, String

from commerce.discount.events import DiscountCreated, DiscountStatusChanged
from commerce.domain import commerce


class DiscountApplication(Enum):
    ORDER = "ORDER"
    LINE_ITEM = "LINE_ITEM"
    SHIPPING = "SHIPPING"


class DiscountMethod(Enum):
    PERCENT_OFF = "PERCENT_OFF"
    FLAT_RATE = "FLAT_RATE"


class DiscountStatus(Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SCHEDULED = "SCHEDULED"
    EXPIRED = "EXPIRED"


def aware(moment):
    """Treat naive datetimes as UTC so window checks can compare them."""
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@commerce.aggregate
class Discount:
    code = String(required=True, max_length=64)
    application = String(required=True, max_length=15, choices=DiscountApplication)
    method = String(required=True, max_length=15, choices=DiscountMethod)
    value = Float(required=True, min_value=0.0)
    status = String(max_length=15, choices=DiscountStatus, default=DiscountStatus.ACTIVE.value)
    starts_at = DateTime()
    ends_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def window_must_be_ordered(self):
        if self.starts_at and self.ends_at and aware(self.ends_at) < aware(self.starts_at):
            raise ValidationError({"ends_at": ["Discount cannot end before it starts"]})

    @classmethod
    def create(cls, code, application, method, value, status=DiscountStatus.ACTIVE.value, starts_at=None, ends_at=None):
        now = datetime.now(UTC)
        discount = cls(
            code=code.strip().upper(),
            application=application,
            method=method,
            value=value,
            status=status,
            starts_at=starts_at,
            ends_at=ends_at,
            created_at=now,
            updated_at=now,
        )
        discount.raise_(
            DiscountCreated(
                discount_id=str(discount.id),
                code=discount.code,
                application=discount.application,
                method=discount.method,
                value=discount.value,
                status=discount.status,
                starts_at=starts_at,
                ends_at=ends_at,
            )
        )
        return discount

    def is_active_at(self, now) -> bool:
        if DiscountStatus(self.status) != DiscountStatus.ACTIVE:
            return False
        now = aware(now)
        if self.starts_at and now < aware(self.starts_at):
            return False
        if self.ends_at and now > aware(self.ends_at):
            return False
        return True

    def change_status(self, status):
        if status == self.status:
            return

        previous_status = self.status
        self.status = status
        self.updated_at = datetime.now(UTC)

        self.raise_(
            DiscountStatusChanged(
                discount_id=str(self.id),
                code=self.code,
                previous_status=previous_status,
                new_status=status,
            )
        )


@commerce.repository(part_of=Discount)
class DiscountRepository:
    def by_code(self, code) -> Discount | None:
        """Case-insensitive lookup; codes are stored uppercase."""
        matches = self._dao.query.filter(code=str(code).strip().upper()).all().items
        return matches[0] if matches else None
