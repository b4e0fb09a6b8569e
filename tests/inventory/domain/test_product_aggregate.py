"""Tests for the Product aggregate: creation, availability and the stock ledger."""

from decimal import Decimal

import pytest
from protean.exceptions import ValidationError
from storefront.inventory.events import ProductAdded, ProductDeactivated, StockReplenished, StockReserved
from storefront.inventory.product import Product, ProductStatus
from storefront.shared.errors import InsufficientStock, OutOfStock, ProductUnavailable


def _make_product(**overrides):
    defaults = {
        "name": "Kiondo Basket",
        "price": "10.00",
        "stock_quantity": 3,
        "category": "Crafts",
    }
    defaults.update(overrides)
    return Product.create(**defaults)


class TestProductCreation:
    def test_create_sets_price_to_two_places(self):
        product = _make_product(price="12.5")
        assert product.price == Decimal("12.50")

    def test_create_is_active(self):
        assert _make_product().status == ProductStatus.ACTIVE.value

    def test_create_with_stock_is_available(self):
        assert _make_product(stock_quantity=3).available is True

    def test_create_without_stock_is_unavailable(self):
        assert _make_product(stock_quantity=0).available is False

    def test_create_raises_product_added(self):
        product = _make_product()
        events = [e for e in product._events if isinstance(e, ProductAdded)]
        assert len(events) == 1
        assert events[0].stock_quantity == 3


class TestAvailabilityInvariants:
    def test_negative_stock_is_rejected(self):
        product = _make_product()
        with pytest.raises(ValidationError):
            product.stock_quantity = -1

    def test_cannot_flag_exhausted_product_available(self):
        product = _make_product(stock_quantity=0)
        with pytest.raises(ValidationError):
            product.available = True


class TestReserve:
    def test_reserve_decrements_stock(self):
        product = _make_product(stock_quantity=3)
        remaining = product.reserve(2)
        assert remaining == 1
        assert product.stock_quantity == 1
        assert product.available is True

    def test_reserve_last_units_marks_unavailable(self):
        product = _make_product(stock_quantity=3)
        product.reserve(3)
        assert product.stock_quantity == 0
        assert product.available is False

    def test_reserve_more_than_stock_fails_and_keeps_stock(self):
        product = _make_product(stock_quantity=3)
        with pytest.raises(InsufficientStock) as exc:
            product.reserve(5)
        assert exc.value.available == 3
        assert exc.value.requested == 5
        assert product.stock_quantity == 3

    def test_reserve_from_inactive_product_fails(self):
        product = _make_product()
        product.deactivate()
        with pytest.raises(ProductUnavailable):
            product.reserve(1)

    def test_reserve_from_out_of_stock_product_fails(self):
        product = _make_product(stock_quantity=0)
        with pytest.raises(ProductUnavailable):
            product.reserve(1)

    def test_reserve_zero_is_invalid(self):
        with pytest.raises(ValidationError):
            _make_product().reserve(0)

    def test_reserve_raises_stock_reserved(self):
        product = _make_product(stock_quantity=3)
        product.reserve(2, reference="R1")
        event = next(e for e in product._events if isinstance(e, StockReserved))
        assert event.previous_stock == 3
        assert event.remaining == 1
        assert event.reference == "R1"


class TestSupplyCheck:
    def test_enough_stock_passes(self):
        _make_product(stock_quantity=3).ensure_can_supply(3)

    def test_inactive_product_is_not_available(self):
        product = _make_product()
        product.deactivate()
        with pytest.raises(ProductUnavailable):
            product.ensure_can_supply(1)

    def test_exhausted_product_is_out_of_stock(self):
        with pytest.raises(OutOfStock):
            _make_product(stock_quantity=0).ensure_can_supply(1)

    def test_too_many_reports_available_count(self):
        with pytest.raises(InsufficientStock) as exc:
            _make_product(stock_quantity=3).ensure_can_supply(4)
        assert exc.value.message == "Insufficient stock: 3 available, 4 requested"


class TestReplenishAndDeactivate:
    def test_replenish_restores_availability(self):
        product = _make_product(stock_quantity=0)
        product.replenish(5)
        assert product.stock_quantity == 5
        assert product.available is True
        assert any(isinstance(e, StockReplenished) for e in product._events)

    def test_replenish_inactive_product_stays_unavailable(self):
        product = _make_product(stock_quantity=0)
        product.deactivate()
        product.replenish(5)
        assert product.available is False

    def test_deactivate_hides_product(self):
        product = _make_product()
        product.deactivate()
        assert product.status == ProductStatus.INACTIVE.value
        assert product.available is False
        assert any(isinstance(e, ProductDeactivated) for e in product._events)

    def test_deactivate_twice_fails(self):
        product = _make_product()
        product.deactivate()
        with pytest.raises(ValidationError):
            product.deactivate()

    def test_update_details_changes_price(self):
        product = _make_product()
        product.update_details(price="14.99", name="Large Kiondo")
        assert product.price == Decimal("14.99")
        assert product.name == "Large Kiondo"
