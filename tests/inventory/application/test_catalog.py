"""Application tests for catalog maintenance and catalog reads."""

import time
from decimal import Decimal

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from storefront.inventory import queries
from storefront.inventory.catalog import DeactivateProduct, UpdateProductDetails
from storefront.inventory.category import CreateCategory, DeactivateCategory, UpdateCategory
from storefront.inventory.product import FEATURED_LIMIT
from storefront.shared.errors import CategoryNotFound, DuplicateCategory, ProductNotFound


class TestProductMaintenance:
    def test_add_product_is_readable(self, add_product):
        product_id = add_product(name="Sisal Mat", price="25.00", stock=4)
        view = queries.get_product(product_id)
        assert view.name == "Sisal Mat"
        assert view.price == Decimal("25.00")
        assert view.available is True

    def test_update_details(self, add_product):
        product_id = add_product()
        current_domain.process(
            UpdateProductDetails(product_id=product_id, price=Decimal("11.00"), rating=4.5),
            asynchronous=False,
        )
        view = queries.get_product(product_id)
        assert view.price == Decimal("11.00")
        assert view.rating == 4.5

    def test_deactivated_product_leaves_active_listing(self, add_product):
        product_id = add_product()
        current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
        assert queries.list_active() == []
        assert queries.get_product(product_id).status == "INACTIVE"

    def test_unknown_product(self):
        with pytest.raises(ProductNotFound):
            queries.get_product("nope")


class TestCatalogReads:
    def test_search_is_case_insensitive_over_name_description_category(self, add_product):
        add_product(name="Beaded Necklace", category="Jewellery")
        add_product(name="Kikoy", description="Hand-woven BEACH wrap", category="Textiles")
        add_product(name="Soapstone Bowl", category="Home")

        assert [p.name for p in queries.search("necklace")] == ["Beaded Necklace"]
        assert [p.name for p in queries.search("beach")] == ["Kikoy"]
        assert [p.name for p in queries.search("HOME")] == ["Soapstone Bowl"]

    def test_search_skips_inactive_products(self, add_product):
        product_id = add_product(name="Old Basket")
        current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
        assert queries.search("basket") == []

    def test_blank_search_lists_everything_active(self, add_product):
        add_product(name="A")
        add_product(name="B")
        assert len(queries.search("  ")) == 2

    def test_list_by_category(self, add_product):
        add_product(name="Shuka", category="Textiles")
        add_product(name="Bowl", category="Home")
        assert [p.name for p in queries.list_by_category("textiles")] == ["Shuka"]

    def test_categories_are_distinct_active_names(self, add_product):
        add_product(name="Shuka", category="Textiles")
        add_product(name="Kikoy", category="Textiles")
        add_product(name="Bowl", category="Home")
        assert queries.list_categories() == ["Home", "Textiles"]

    def test_featured_are_the_newest_twelve(self, add_product):
        for index in range(FEATURED_LIMIT + 2):
            add_product(name=f"Item {index:02d}")
            time.sleep(0.001)

        featured = queries.list_featured()
        assert len(featured) == FEATURED_LIMIT
        assert featured[0].name == f"Item {FEATURED_LIMIT + 1:02d}"
        assert "Item 00" not in {p.name for p in featured}


class TestCategories:
    def _create(self, name="Crafts", **fields):
        return current_domain.process(CreateCategory(name=name, **fields), asynchronous=False)

    def test_create_and_read_by_name(self):
        category_id = self._create(icon="🧺")
        view = queries.get_category_by_name("crafts")
        assert view.id == category_id
        assert view.is_active is True

    def test_duplicate_name_is_refused(self):
        self._create("Crafts")
        with pytest.raises(DuplicateCategory):
            self._create("CRAFTS")

    def test_rename_onto_existing_name_is_refused(self):
        self._create("Crafts")
        home_id = self._create("Home")
        with pytest.raises(DuplicateCategory):
            current_domain.process(UpdateCategory(category_id=home_id, name="Crafts"), asynchronous=False)

    def test_update_description(self):
        category_id = self._create()
        current_domain.process(
            UpdateCategory(category_id=category_id, description="Hand-made"),
            asynchronous=False,
        )
        assert queries.get_category(category_id).description == "Hand-made"

    def test_deactivate(self):
        category_id = self._create()
        current_domain.process(DeactivateCategory(category_id=category_id), asynchronous=False)
        assert queries.get_category(category_id).is_active is False

    def test_listing_is_sorted_by_name(self):
        self._create("Textiles")
        self._create("Home")
        assert [c.name for c in queries.list_category_records()] == ["Home", "Textiles"]

    def test_unknown_category(self):
        with pytest.raises(CategoryNotFound):
            queries.get_category("missing")

    def test_blank_name_is_invalid(self):
        with pytest.raises(ValidationError):
            self._create("")
