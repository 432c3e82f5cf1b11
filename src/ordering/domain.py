"""Ordering bounded context — Checkout and Order Lifecycle.

Converts a buyer's cart selection into an immutable order inside a single
transaction (stock, coupon usage and cart lines move together), and drives
the order through its status state machine, including the buyer/operator
cancellation and refund workflows and the restock counter-flow.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
