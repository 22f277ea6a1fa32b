"""In-memory address book for development and testing."""

from uuid import uuid4

from commerce.addressbook.port import ADDRESS_FIELDS, AddressBook
from commerce.errors import NotFound


class InMemoryAddressBook(AddressBook):
    def __init__(self) -> None:
        self.addresses: dict[str, dict] = {}

    def save(self, address_id: str | None = None, **fields) -> str:
        """Store (or overwrite) an address and return its id."""
        address_id = str(address_id or uuid4())
        self.addresses[address_id] = {key: fields.get(key) for key in ADDRESS_FIELDS}
        return address_id

    def get_address(self, address_id: str) -> dict:
        try:
            return dict(self.addresses[str(address_id)])
        except KeyError:
            raise NotFound("Address", address_id) from None
