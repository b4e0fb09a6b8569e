"""Catalog reads and their typed views.

Nothing here mutates; reads may be served from any replica of the store.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from storefront.inventory.category import Category, load_category
from storefront.inventory.product import Product
from storefront.inventory.stock import load_product
from storefront.shared.errors import CategoryNotFound


@dataclass(frozen=True)
class ProductView:
    id: str
    name: str
    description: str
    price: Decimal
    category: str
    image_url: str | None
    rating: float | None
    stock_quantity: int
    status: str
    available: bool
    created_at: datetime | None


@dataclass(frozen=True)
class CategoryView:
    id: str
    name: str
    description: str | None
    icon: str | None
    is_active: bool


def product_view(product: Product) -> ProductView:
    return ProductView(
        id=str(product.id),
        name=product.name,
        description=product.description or "",
        price=product.price,
        category=product.category or "",
        image_url=product.image_url,
        rating=product.rating,
        stock_quantity=product.stock_quantity,
        status=product.status,
        available=product.available,
        created_at=product.created_at,
    )


def category_view(category: Category) -> CategoryView:
    return CategoryView(
        id=str(category.id),
        name=category.name,
        description=category.description,
        icon=category.icon,
        is_active=category.is_active,
    )


def _products():
    return current_domain.repository_for(Product)


def get_product(product_id: str) -> ProductView:
    return product_view(load_product(product_id))


def list_active() -> list[ProductView]:
    return [product_view(p) for p in _products().active()]


def list_by_category(category: str) -> list[ProductView]:
    return [product_view(p) for p in _products().in_category(category)]


def search(term: str) -> list[ProductView]:
    term = (term or "").strip()
    if not term:
        return list_active()
    return [product_view(p) for p in _products().search(term)]


def list_featured() -> list[ProductView]:
    return [product_view(p) for p in _products().featured()]


def list_categories() -> list[str]:
    """Distinct category names carried by active products."""
    return _products().categories()


def get_category(category_id: str) -> CategoryView:
    return category_view(load_category(category_id))


def get_category_by_name(name: str) -> CategoryView:
    category = current_domain.repository_for(Category).named(name)
    if category is None:
        raise CategoryNotFound(name)
    return category_view(category)


def list_category_records() -> list[CategoryView]:
    return [category_view(c) for c in current_domain.repository_for(Category).listing()]
