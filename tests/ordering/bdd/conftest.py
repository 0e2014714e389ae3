"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from catalogue.product.product import Product
from inventory.stock.store_port import StockRecord
from ordering.order.errors import OrderingError
from pytest_bdd import given, parsers, then


@pytest.fixture()
def outcome():
    """Container for the order (or error) produced by When steps."""
    return {"order": None, "error": None, "results": []}


def product_id_for(name):
    return name.lower()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('branch "{branch_id}" sells "{name}" at {price:f} with {quantity:d} in stock'))
def _(catalog, stock_store, branch_id, name, price, quantity):
    product_id = product_id_for(name)
    catalog.add(Product(id=product_id, branch_id=branch_id, name=name, price=price))
    stock_store.put(StockRecord(product_id=product_id, branch_id=branch_id, quantity=quantity, product_name=name))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is created")
def _(outcome):
    assert outcome["error"] is None
    assert outcome["order"] is not None


@then(parsers.cfparse('"{name}" has {quantity:d} in stock'))
def _(stock_store, name, quantity):
    assert stock_store.get(product_id_for(name)).quantity == quantity


@then(parsers.cfparse('the order is rejected with a {kind} error "{reason}"'))
def _(outcome, kind, reason):
    error = outcome["error"]
    assert isinstance(error, OrderingError)
    assert error.kind == f"{kind}_error"
    assert reason in [message for messages in error.messages.values() for message in messages]
