import os
from decimal import Decimal
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before the domain is first imported."""
    os.environ["PROTEAN_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Shared builders
# ---------------------------------------------------------------------------
@pytest.fixture()
def add_product():
    """Add a product through the catalog command; returns its id."""
    from protean.utils.globals import current_domain
    from storefront.inventory.catalog import AddProduct

    def _add(name="Maasai Shuka", price="10.00", stock=10, category="Textiles", **fields):
        command = AddProduct(
            name=name,
            price=Decimal(str(price)),
            stock_quantity=stock,
            category=category,
            **fields,
        )
        return current_domain.process(command, asynchronous=False)

    return _add


@pytest.fixture()
def gateway():
    from storefront.gateway import FakeGateway

    return FakeGateway()


@pytest.fixture()
def initiator(gateway):
    from storefront.checkout.initiation import CheckoutSessionInitiator

    return CheckoutSessionInitiator(gateway, default_currency="KES")


@pytest.fixture()
def contact():
    from storefront.gateway import CheckoutContact

    return CheckoutContact(
        first_name="Amina",
        last_name="Odhiambo",
        email="amina@example.com",
        phone="254700000001",
    )


@pytest.fixture()
def open_checkout(initiator, contact):
    """Initiate a checkout for ``(product_id, quantity)`` pairs."""
    from storefront.checkout.initiation import CheckoutItem

    def _open(api_ref, *lines, currency=None):
        items = [CheckoutItem(product_id=product_id, quantity=quantity) for product_id, quantity in lines]
        return initiator.initiate(contact, items, api_ref, currency=currency)

    return _open


@pytest.fixture()
def client(gateway):
    from fastapi.testclient import TestClient
    from storefront.api.application import create_app

    return TestClient(create_app(gateway))
