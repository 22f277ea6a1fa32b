"""Address book port (abstract interface).

Saved customer addresses live outside the commerce core. Checkout reads one
at the moment the order is placed and copies its fields; the order never
points back at the saved record.
"""

from abc import ABC, abstractmethod

ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "company",
    "phone",
    "line1",
    "line2",
    "city",
    "region",
    "postal_code",
    "country_code",
)


class AddressBook(ABC):
    """Abstract read-only address book interface."""

    @abstractmethod
    def get_address(self, address_id: str) -> dict:
        """Return the address fields, or raise ``NotFound``."""
        ...
