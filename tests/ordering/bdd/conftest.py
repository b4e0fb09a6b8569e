"""Shared BDD fixtures and step definitions for checkout and reconciliation."""

import pytest
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then
from storefront.inventory.queries import get_product
from storefront.ordering.order import Order
from storefront.ordering.queries import get_order_by_ref


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def products():
    """Product ids by name, filled by the Given steps."""
    return {}


@pytest.fixture()
def error():
    """Container for the refusal captured by a When step."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced {price} with {stock:d} in stock'))
def _(products, add_product, name, price, stock):
    products[name] = add_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('a checkout "{api_ref}" for {quantity:d} of "{name}"'))
def _(products, open_checkout, api_ref, quantity, name):
    open_checkout(api_ref, (products[name], quantity))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('there is {count:d} order for "{api_ref}"'))
def _(count, api_ref):
    orders = current_domain.repository_for(Order).query.filter(api_ref=api_ref).all().items
    assert len(orders) == count


@then(parsers.cfparse('the order "{api_ref}" is "{status}" with total {total}'))
def _(api_ref, status, total):
    order = get_order_by_ref(api_ref)
    assert order.payment_status == status
    assert str(order.total_amount) == total


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(products, name, stock):
    assert get_product(products[name]).stock_quantity == stock


@then("the payment event is refused")
def _(error):
    assert isinstance(error["exc"], ValidationError)


@then("the checkout is refused")
def _(error):
    assert isinstance(error["exc"], ValidationError)
    assert "api_ref" in error["exc"].messages


@then(parsers.cfparse("the gateway was called {count:d} time"))
def _(gateway, count):
    assert len(gateway.calls) == count


@then(parsers.cfparse('the order "{api_ref}" is flagged for review'))
def _(api_ref):
    assert get_order_by_ref(api_ref).needs_review is True
