"""Integration tests for the cart and order endpoints via TestClient."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api import cart_router, order_router, register_ordering_exception_handlers
from ordering.inventory.product import Product
from protean import current_domain

BUYER = {"X-User-Id": "user-api-001"}
OTHER_BUYER = {"X-User-Id": "user-api-999"}
GUEST = {"X-Guest-Id": "guest-api-001"}
OPERATOR = {"X-User-Id": "admin-001", "X-User-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(cart_router)
    app.include_router(order_router)
    register_ordering_exception_handlers(app)
    return TestClient(app)


def _add_to_cart(client, product_id, quantity=1, headers=BUYER):
    response = client.post("/cart/items", json={"product_id": product_id, "quantity": quantity}, headers=headers)
    assert response.status_code == 201
    return response.json()["item_id"]


def _checkout(client, item_ids, shipping_address, headers=BUYER, **body):
    payload = {"selected_item_ids": item_ids, "payment_method": "COD", "shipping_address": shipping_address}
    payload.update(body)
    return client.post("/orders", json=payload, headers=headers)


def _place_order(client, seed_product, shipping_address, quantity=1, headers=BUYER, **product_attrs):
    product = seed_product(stock=5, **product_attrs)
    item_id = _add_to_cart(client, str(product.id), quantity, headers=headers)
    response = _checkout(client, [item_id], shipping_address, headers=headers)
    assert response.status_code == 201
    return response.json()["order_id"]


class TestCartEndpoints:
    def test_add_and_read_cart(self, client):
        item_id = _add_to_cart(client, "prod-api-001", quantity=2)

        response = client.get("/cart", headers=BUYER)
        assert response.status_code == 200
        assert response.json()["items"] == [
            {"item_id": item_id, "product_id": "prod-api-001", "variant_id": None, "quantity": 2}
        ]

    def test_apply_coupon(self, client):
        _add_to_cart(client, "prod-api-001")

        response = client.post("/cart/coupon", json={"coupon_code": "save20"}, headers=BUYER)
        assert response.status_code == 200
        assert client.get("/cart", headers=BUYER).json()["coupon_code"] == "SAVE20"

    def test_anonymous_caller_is_forbidden(self, client):
        response = client.post("/cart/items", json={"product_id": "prod-api-001"})
        assert response.status_code == 403

    def test_missing_cart_returns_404(self, client):
        response = client.get("/cart", headers=BUYER)
        assert response.status_code == 404


class TestPlaceOrderEndpoint:
    def test_checkout_returns_201_with_totals(self, client, seed_product, seed_coupon, shipping_address):
        seed_coupon(code="SAVE20", discount_value=20.0)
        product = seed_product(price=100.0, stock=5)
        item_id = _add_to_cart(client, str(product.id))
        client.post("/cart/coupon", json={"coupon_code": "SAVE20"}, headers=BUYER)

        response = _checkout(client, [item_id], shipping_address)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "Pending"
        assert body["items_price"] == 100.0
        assert body["discount_amount"] == 20.0
        assert body["total_price"] == 80.0
        assert body["coupon_code"] == "SAVE20"
        assert body["guest_tracking_token"] is None

    def test_guest_checkout_returns_tracking_token(self, client, seed_product, shipping_address):
        product = seed_product(stock=5)
        item_id = _add_to_cart(client, str(product.id), headers=GUEST)

        response = _checkout(client, [item_id], shipping_address, headers=GUEST, guest_email="guest@example.com")

        assert response.status_code == 201
        body = response.json()
        assert len(body["guest_tracking_token"]) >= 30

        tracked = client.get(f"/orders/guest-track/{body['order_id']}/{body['guest_tracking_token']}")
        assert tracked.status_code == 200
        assert tracked.json()["guest_tracking_token"] is None

    def test_insufficient_stock_returns_409(self, client, seed_product, shipping_address):
        product = seed_product(stock=1)
        item_id = _add_to_cart(client, str(product.id), quantity=2)

        response = _checkout(client, [item_id], shipping_address)

        assert response.status_code == 409
        body = response.json()
        assert body["code"] == "insufficient_stock"
        assert body["product_id"] == str(product.id)
        assert body["available"] == 1
        assert body["requested"] == 2
        assert current_domain.repository_for(Product).get(product.id).stock_quantity == 1

    def test_stale_selection_returns_409(self, client, seed_product, shipping_address):
        product = seed_product(stock=5)
        _add_to_cart(client, str(product.id))

        response = _checkout(client, ["item-not-in-cart"], shipping_address)

        assert response.status_code == 409
        assert response.json()["code"] == "selection_stale"
        assert response.json()["item_ids"] == ["item-not-in-cart"]

    def test_empty_selection_is_unprocessable(self, client, shipping_address):
        response = _checkout(client, [], shipping_address)
        assert response.status_code == 422

    def test_guest_without_email_returns_400(self, client, seed_product, shipping_address):
        product = seed_product(stock=5)
        item_id = _add_to_cart(client, str(product.id), headers=GUEST)

        response = _checkout(client, [item_id], shipping_address, headers=GUEST)
        assert response.status_code == 400


class TestReadOrderEndpoint:
    def test_owner_and_operator_can_read(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)

        assert client.get(f"/orders/{order_id}", headers=BUYER).status_code == 200
        assert client.get(f"/orders/{order_id}", headers=OPERATOR).status_code == 200

    def test_other_buyer_is_forbidden(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)
        assert client.get(f"/orders/{order_id}", headers=OTHER_BUYER).status_code == 403

    def test_unknown_order_returns_404(self, client):
        assert client.get("/orders/does-not-exist", headers=OPERATOR).status_code == 404

    def test_malformed_tracking_token_returns_400(self, client):
        assert client.get("/orders/guest-track/some-order/short").status_code == 400


class TestMyOrdersEndpoint:
    def test_lists_only_the_callers_orders_newest_first(self, client, seed_product, shipping_address):
        first = _place_order(client, seed_product, shipping_address, name="Mug")
        second = _place_order(client, seed_product, shipping_address, name="Lamp")
        _place_order(client, seed_product, shipping_address, headers=OTHER_BUYER)

        response = client.get("/orders/my", headers=BUYER)

        assert response.status_code == 200
        body = response.json()
        assert body["total_orders"] == 2
        assert body["total_pages"] == 1
        assert [order["order_id"] for order in body["orders"]] == [second, first]
        assert body["orders"][0]["lines"] == [{"name": "Lamp", "image": None}]
        assert body["orders"][0]["total_price"] == 100.0

    def test_pages_through_orders(self, client, seed_product, shipping_address):
        first = _place_order(client, seed_product, shipping_address)
        _place_order(client, seed_product, shipping_address)
        _place_order(client, seed_product, shipping_address)

        response = client.get("/orders/my", params={"page": 2, "limit": 2}, headers=BUYER)

        body = response.json()
        assert body["current_page"] == 2
        assert body["limit"] == 2
        assert body["total_pages"] == 2
        assert body["total_orders"] == 3
        assert [order["order_id"] for order in body["orders"]] == [first]

    def test_guest_session_is_forbidden(self, client):
        assert client.get("/orders/my", headers=GUEST).status_code == 403

    def test_no_orders_yields_empty_page(self, client):
        body = client.get("/orders/my", headers=BUYER).json()

        assert body["orders"] == []
        assert body["total_orders"] == 0
        assert body["total_pages"] == 0


class TestOperatorOrderListEndpoint:
    def test_filters_by_status(self, client, seed_product, shipping_address):
        _place_order(client, seed_product, shipping_address)
        order_id = _place_order(client, seed_product, shipping_address)
        client.put(f"/orders/{order_id}/request-cancellation", json={"reason": "Ordered twice"}, headers=BUYER)

        response = client.get("/orders", params={"status": "CancellationRequested"}, headers=OPERATOR)

        assert response.status_code == 200
        body = response.json()
        assert body["total_orders"] == 1
        assert body["orders"][0]["order_id"] == order_id
        assert body["orders"][0]["cancellation_request"]["reason"] == "Ordered twice"

    def test_filters_by_buyer(self, client, seed_product, shipping_address):
        _place_order(client, seed_product, shipping_address)
        other = _place_order(client, seed_product, shipping_address, headers=OTHER_BUYER)

        body = client.get("/orders", params={"user_id": OTHER_BUYER["X-User-Id"]}, headers=OPERATOR).json()

        assert [order["order_id"] for order in body["orders"]] == [other]

    def test_filters_by_placement_date(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)
        today = datetime.now(UTC).date()
        tomorrow = today + timedelta(days=1)

        within = client.get(
            "/orders", params={"start_date": today.isoformat(), "end_date": today.isoformat()}, headers=OPERATOR
        ).json()
        after = client.get("/orders", params={"start_date": tomorrow.isoformat()}, headers=OPERATOR).json()

        assert [order["order_id"] for order in within["orders"]] == [order_id]
        assert after["total_orders"] == 0

    def test_sorts_by_total_price(self, client, seed_product, shipping_address):
        dearer = _place_order(client, seed_product, shipping_address, price=100.0)
        cheaper = _place_order(client, seed_product, shipping_address, price=30.0)

        body = client.get(
            "/orders", params={"sort_by": "total_price", "sort_order": "asc"}, headers=OPERATOR
        ).json()

        assert [order["order_id"] for order in body["orders"]] == [cheaper, dearer]
        assert [order["total_price"] for order in body["orders"]] == [30.0, 100.0]

    def test_buyer_is_forbidden(self, client):
        assert client.get("/orders", headers=BUYER).status_code == 403

    def test_unknown_status_is_unprocessable(self, client):
        assert client.get("/orders", params={"status": "Lost"}, headers=OPERATOR).status_code == 422


class TestStatusEndpoints:
    def test_operator_moves_order_along(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)

        response = client.put(f"/orders/{order_id}/status", json={"status": "Processing"}, headers=OPERATOR)
        assert response.status_code == 200
        assert response.json()["status"] == "Processing"

    def test_buyer_cannot_set_status(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)

        response = client.put(f"/orders/{order_id}/status", json={"status": "Processing"}, headers=BUYER)
        assert response.status_code == 403

    def test_illegal_transition_returns_409(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)

        response = client.put(f"/orders/{order_id}/status", json={"status": "Shipped"}, headers=OPERATOR)

        assert response.status_code == 409
        assert response.json()["from"] == "Pending"
        assert response.json()["to"] == "Shipped"

    def test_cancellation_request_then_rejection(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)

        requested = client.put(
            f"/orders/{order_id}/request-cancellation",
            json={"reason": "Ordered twice"},
            headers=BUYER,
        )
        assert requested.status_code == 200
        assert requested.json()["status"] == "CancellationRequested"
        assert requested.json()["cancellation_request"]["reason"] == "Ordered twice"

        rejected = client.put(
            f"/orders/{order_id}/reject-cancellation",
            json={"reason": "Already packed"},
            headers=OPERATOR,
        )
        assert rejected.status_code == 200
        assert rejected.json()["status"] == "Pending"
        assert rejected.json()["previous_status"] is None

    def test_other_buyer_cannot_request_cancellation(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)

        response = client.put(
            f"/orders/{order_id}/request-cancellation",
            json={"reason": "Not my order"},
            headers=OTHER_BUYER,
        )
        assert response.status_code == 403

    def test_refund_flow(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address)
        client.put(f"/orders/{order_id}/status", json={"status": "Processing"}, headers=OPERATOR)
        client.put(f"/orders/{order_id}/status", json={"status": "Shipped"}, headers=OPERATOR)

        delivered = client.put(f"/orders/{order_id}/confirm-delivery", headers=BUYER)
        assert delivered.json()["status"] == "Delivered"
        assert delivered.json()["is_paid"] is True

        client.put(f"/orders/{order_id}/request-refund", json={"reason": "Broken on arrival"}, headers=BUYER)
        approved = client.put(f"/orders/{order_id}/approve-refund", headers=OPERATOR)

        assert approved.status_code == 200
        assert approved.json()["status"] == "Refunded"
        assert approved.json()["is_paid"] is False


class TestRestockEndpoint:
    def test_restock_once_then_409(self, client, seed_product, shipping_address):
        order_id = _place_order(client, seed_product, shipping_address, quantity=2)
        client.put(f"/orders/{order_id}/status", json={"status": "Cancelled"}, headers=OPERATOR)

        first = client.post(f"/orders/{order_id}/restock", headers=OPERATOR)
        assert first.status_code == 200
        assert first.json() == {"order_id": order_id, "is_stock_restored": True, "units_restored": 2}

        second = client.post(f"/orders/{order_id}/restock", headers=OPERATOR)
        assert second.status_code == 409
        assert second.json()["code"] == "already_restored"
