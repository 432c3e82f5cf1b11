"""Transaction context and commit gate.

``TransactionContext`` bundles the stores a checkout or status command writes
to, all bound to the unit of work Protean opens around the running command
handler. It is passed explicitly to every checkout and restock function, so
none of them reach for ambient state and each can be exercised against fakes.

``TransactionGate`` serializes write commands within the process. A command
that cannot enter the gate within the configured timeout is aborted with
CheckoutTimeout and may be retried from scratch.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from ordering.cart.cart import ShoppingCart
from ordering.cart.store import CartStore
from ordering.coupon.coupon import Coupon
from ordering.coupon.ledger import CouponLedger
from ordering.errors import CheckoutTimeout
from ordering.inventory.product import Product, ProductVariant
from ordering.inventory.store import InventoryStore
from ordering.order.order import Order

logger = structlog.get_logger(__name__)


@dataclass
class TransactionContext:
    orders: object
    inventory: InventoryStore
    coupons: CouponLedger
    carts: CartStore
    now: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def bind(cls, now=None) -> "TransactionContext":
        """Build a context over the active domain's repositories.

        Call from inside a command handler so every repository works in the
        handler's unit of work.
        """
        order_repo = current_domain.repository_for(Order)
        return cls(
            orders=order_repo,
            inventory=InventoryStore(
                current_domain.repository_for(Product),
                current_domain.repository_for(ProductVariant),
            ),
            coupons=CouponLedger(current_domain.repository_for(Coupon), order_repo),
            carts=CartStore(current_domain.repository_for(ShoppingCart)),
            now=now or datetime.now(UTC),
        )


class TransactionGate:
    """Serializes write commands in this process.

    ``timeout_seconds`` bounds only the wait to enter the gate. Once a command
    holds it, the command runs to commit or rollback with no deadline, and
    ``CheckoutTimeout`` is never raised from inside a held section.
    """

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, operation: str):
        if not self._lock.acquire(timeout=self.timeout_seconds):
            logger.warning("transaction_gate_timeout", operation=operation, timeout=self.timeout_seconds)
            raise CheckoutTimeout(operation, self.timeout_seconds)
        try:
            yield
        finally:
            self._lock.release()


@dataclass(frozen=True)
class CommandOutcome:
    """What a write command hands back: the order it touched and the notices to send after commit."""

    order_id: str
    notices: tuple = ()
