"""Catalog service port (abstract interface).

The catalog owns products and variants. The commerce core only reads a
variant's sellable attributes, and only at the moment it needs them: when an
item goes into a cart and when checkout snapshots it into a line item.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Variant:
    """Priced catalog unit as seen by the commerce core."""

    id: str
    product_id: str | None
    title: str
    sku: str | None
    price: Decimal
    taxable: bool = True
    weight_grams: Decimal = Decimal("0")


class CatalogService(ABC):
    """Abstract read-only catalog interface."""

    @abstractmethod
    def get_variant(self, variant_id: str) -> Variant:
        """Return the variant, or raise ``NotFound``."""
        ...
