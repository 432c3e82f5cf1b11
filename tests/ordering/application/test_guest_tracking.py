"""Application tests for unauthenticated guest order tracking."""

from datetime import UTC, datetime, timedelta

import pytest
from ordering.order.order import Order
from ordering.order.tracking import find_guest_order
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


@pytest.fixture()
def guest_order(placed_order):
    order_id, _ = placed_order(guest_email="guest@example.com")
    return current_domain.repository_for(Order).get(order_id)


class TestGuestTracking:
    def test_valid_token_finds_the_order(self, guest_order):
        found = find_guest_order(str(guest_order.id), guest_order.guest_tracking_token)
        assert found.id == guest_order.id
        assert found.guest_email == "guest@example.com"

    def test_wrong_token_is_not_found(self, guest_order):
        with pytest.raises(ObjectNotFoundError):
            find_guest_order(str(guest_order.id), "x" * 43)

    def test_short_token_is_rejected_as_malformed(self, guest_order):
        with pytest.raises(ValidationError):
            find_guest_order(str(guest_order.id), guest_order.guest_tracking_token[:10])

    def test_expired_token_is_not_found(self, guest_order):
        after_expiry = guest_order.guest_tracking_expires_at + timedelta(seconds=1)
        with pytest.raises(ObjectNotFoundError):
            find_guest_order(str(guest_order.id), guest_order.guest_tracking_token, now=after_expiry)

    def test_token_is_valid_for_a_week(self, guest_order):
        within_week = datetime.now(UTC) + timedelta(days=6)
        assert find_guest_order(str(guest_order.id), guest_order.guest_tracking_token, now=within_week)

    def test_signed_in_orders_are_not_trackable(self, placed_order):
        order_id, _ = placed_order()
        with pytest.raises(ObjectNotFoundError):
            find_guest_order(order_id, "t" * 43)
