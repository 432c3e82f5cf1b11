"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.checkout.service import execute
from ordering.inventory.product import Product
from ordering.order.order import Order
from protean import current_domain
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Scenario state
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalog():
    """Products seeded by the scenario, keyed by name."""
    return {}


@pytest.fixture()
def outcome():
    """The order a scenario works on and the errors its When steps raised."""
    return {"order_id": None, "exc": None, "errors": []}


@pytest.fixture()
def attempt(outcome):
    """Execute a command, capturing a rejection instead of raising it."""

    def _attempt(command):
        try:
            result = execute(command)
        except Exception as exc:
            outcome["exc"] = exc
            outcome["errors"].append(exc)
            return None
        outcome["exc"] = None
        return result

    return _attempt


@pytest.fixture()
def load_order(outcome):
    def _load():
        return current_domain.repository_for(Order).get(outcome["order_id"])

    return _load


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price:f} with {stock:d} in stock'))
def _(catalog, seed_product, name, price, stock):
    catalog[name] = seed_product(name=name, price=price, stock=stock)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(load_order, status):
    assert load_order().status == status


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(catalog, name, stock):
    assert current_domain.repository_for(Product).get(catalog[name].id).stock_quantity == stock
