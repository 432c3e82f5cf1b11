import json
from datetime import UTC, datetime, timedelta

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    bed = DomainFixture(ordering)
    bed.setup()
    setup_db(ordering)
    yield bed
    drop_db(ordering)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def notifier():
    from ordering.notifications import set_notifier
    from ordering.notifications.fake import FakeNotifier

    fake = FakeNotifier()
    set_notifier(fake)
    return fake


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------
SHIPPING_ADDRESS = {
    "full_name": "Jane Doe",
    "phone": "+1-555-0100",
    "street": "123 Main St",
    "city": "Springfield",
    "state": "IL",
    "postal_code": "62701",
    "country": "US",
}


def _seed_product(name="Test Product", price=100.0, stock=5, **attributes):
    from ordering.inventory.product import Product

    product = Product.create(name=name, price=price, stock_quantity=stock, sku=attributes.pop("sku", "SKU-001"), **attributes)
    current_domain.repository_for(Product).add(product)
    return product


def _seed_variant_product(name="T-Shirt", variants=(("TS-RED-M", 25.0, 3),), **attributes):
    """Create a product sold through variants; returns (product, [variants])."""
    from ordering.inventory.product import Product, ProductVariant

    product = Product.create(name=name, price=variants[0][1], **attributes)
    created = [
        product.add_variant(sku=sku, price=price, stock_quantity=stock, options=[{"attribute": "Size", "value": sku[-1]}])
        for sku, price, stock in variants
    ]
    current_domain.repository_for(Product).add(product)
    for variant in created:
        current_domain.repository_for(ProductVariant).add(variant)
    return product, created


def _seed_cart(lines, user_id="user-001", guest_id=None, coupon_code=None):
    """Create a cart with (product_id, variant_id, quantity) lines; returns (cart, [item ids])."""
    from ordering.cart.cart import ShoppingCart

    cart = ShoppingCart.create(user_id=None if guest_id else user_id, guest_id=guest_id)
    item_ids = [cart.add_item(product_id, variant_id, quantity) for product_id, variant_id, quantity in lines]
    if coupon_code:
        cart.apply_coupon(coupon_code)
    current_domain.repository_for(ShoppingCart).add(cart)
    return cart, item_ids


def _seed_coupon(code="SAVE20", discount_type="fixed_amount", discount_value=20.0, **attributes):
    from ordering.coupon.coupon import Coupon

    attributes.setdefault("expires_at", datetime.now(UTC) + timedelta(days=30))
    coupon = Coupon.create(code=code, discount_type=discount_type, discount_value=discount_value, **attributes)
    current_domain.repository_for(Coupon).add(coupon)
    return coupon


def _place_order_command(item_ids, user_id="user-001", payment_method="COD", **overrides):
    from ordering.checkout.placement import PlaceOrder

    fields = {
        "user_id": user_id,
        "selected_item_ids": json.dumps(item_ids),
        "payment_method": payment_method,
        "shipping_address": json.dumps(SHIPPING_ADDRESS),
    }
    fields.update(overrides)
    return PlaceOrder(**fields)


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def seed_product():
    return _seed_product


@pytest.fixture()
def seed_variant_product():
    return _seed_variant_product


@pytest.fixture()
def seed_cart():
    return _seed_cart


@pytest.fixture()
def seed_coupon():
    return _seed_coupon


@pytest.fixture()
def place_order_command():
    return _place_order_command


@pytest.fixture()
def shipping_address():
    return dict(SHIPPING_ADDRESS)


@pytest.fixture()
def placed_order():
    """Factory: check out ``quantity`` units of a fresh product; returns (order_id, product_id)."""
    from ordering.checkout.service import execute

    def _place(stock=5, quantity=2, user_id="user-001", payment_method="COD", guest_email=None):
        product = _seed_product(stock=stock)
        guest_id = "guest-session-1" if guest_email else None
        _, item_ids = _seed_cart([(str(product.id), None, quantity)], user_id=user_id, guest_id=guest_id)
        command = _place_order_command(
            item_ids,
            user_id=None if guest_email else user_id,
            payment_method=payment_method,
            guest_id=guest_id,
            guest_email=guest_email,
        )
        return execute(command), str(product.id)

    return _place
