"""In-memory catalog for development and testing."""

from decimal import Decimal

from commerce.catalog.port import CatalogService, Variant
from commerce.errors import NotFound
from commerce.shared.money import to_money


class InMemoryCatalog(CatalogService):
    """Catalog backed by a dict, editable at runtime."""

    def __init__(self) -> None:
        self.variants: dict[str, Variant] = {}
        self.calls: list[str] = []

    def register(
        self,
        variant_id: str,
        price,
        title: str = "",
        sku: str | None = None,
        product_id: str | None = None,
        taxable: bool = True,
        weight_grams=0,
    ) -> Variant:
        """Add or replace a variant. Replacing models a catalog edit."""
        variant = Variant(
            id=str(variant_id),
            product_id=str(product_id) if product_id else None,
            title=title or str(variant_id),
            sku=sku,
            price=to_money(price),
            taxable=taxable,
            weight_grams=Decimal(str(weight_grams)),
        )
        self.variants[variant.id] = variant
        return variant

    def get_variant(self, variant_id: str) -> Variant:
        self.calls.append(str(variant_id))
        try:
            return self.variants[str(variant_id)]
        except KeyError:
            raise NotFound("Variant", variant_id) from None
