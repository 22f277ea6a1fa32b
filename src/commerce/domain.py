"""Commerce bounded context: the transactional core of the store.

Owns carts, orders, inventory levels, discounts, the payment ledger and the
fulfillment/refund trackers. Catalog entries, customers and saved addresses
are read through collaborator ports and never owned here.
"""

import structlog
from protean.domain import Domain

commerce = Domain(name="commerce")

logger = structlog.get_logger(__name__)
