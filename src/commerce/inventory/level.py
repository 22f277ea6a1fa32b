"""InventoryLevel aggregate: available quantity of one variant at one location.

A variant may also have a single location-less level (``location_id`` is
None). Quantities never go below zero: ``reserve`` checks and decrements in
one step, and callers only dispatch it while holding the level's row lock.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer

from commerce.domain import commerce
from commerce.errors import InsufficientStock
from commerce.inventory.events import InventoryStocked, StockReleased, StockReserved


def same_location(left, right) -> bool:
    return (str(left) if left else None) == (str(right) if right else None)


@commerce.aggregate
class InventoryLevel:
    variant_id = Identifier(required=True)
    location_id = Identifier()
    quantity = Integer(default=0, min_value=0)
    updated_at = DateTime()

    @invariant.post
    def quantity_cannot_be_negative(self):
        if self.quantity is not None and self.quantity < 0:
            raise ValidationError({"quantity": ["Inventory quantity cannot be negative"]})

    @classmethod
    def stock(cls, variant_id, location_id=None, quantity=0):
        level = cls(
            variant_id=variant_id,
            location_id=location_id,
            quantity=quantity,
            updated_at=datetime.now(UTC),
        )
        level.raise_(
            InventoryStocked(
                level_id=str(level.id),
                variant_id=str(variant_id),
                location_id=str(location_id) if location_id else None,
                quantity=quantity,
            )
        )
        return level

    def can_cover(self, quantity) -> bool:
        return self.quantity >= quantity

    def reserve(self, quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Reservation quantity must be positive"]})
        if not self.can_cover(quantity):
            raise InsufficientStock(self.variant_id, self.location_id, quantity, self.quantity)

        self.quantity -= quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockReserved(
                level_id=str(self.id),
                variant_id=str(self.variant_id),
                location_id=str(self.location_id) if self.location_id else None,
                quantity=quantity,
                remaining=self.quantity,
            )
        )

    def release(self, quantity):
        """Give ``quantity`` back. No upper bound is enforced."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Release quantity must be positive"]})

        self.quantity += quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockReleased(
                level_id=str(self.id),
                variant_id=str(self.variant_id),
                location_id=str(self.location_id) if self.location_id else None,
                quantity=quantity,
                remaining=self.quantity,
            )
        )


@commerce.repository(part_of=InventoryLevel)
class InventoryLevelRepository:
    def for_variant(self, variant_id) -> list[InventoryLevel]:
        """All levels of a variant, location-less level first, then by location id."""
        levels = self._dao.query.filter(variant_id=str(variant_id)).all().items
        return sorted(levels, key=lambda level: str(level.location_id) if level.location_id else "")

    def at(self, variant_id, location_id=None) -> InventoryLevel | None:
        return next(
            (level for level in self.for_variant(variant_id) if same_location(level.location_id, location_id)),
            None,
        )
