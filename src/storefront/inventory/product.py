"""Product aggregate: the inventory ledger row for one sellable item.

Stock is decremented only through ``reserve``. The aggregate's optimistic
concurrency version is what makes a reservation atomic against the live row:
two handlers that read the same version cannot both commit, and the loser
is re-run by the handler's version retry against fresh stock.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Decimal, Float, Integer, String, Text
from protean.utils.query import Q

from storefront.domain import storefront
from storefront.inventory.events import (
    ProductAdded,
    ProductDeactivated,
    ProductDetailsUpdated,
    StockReplenished,
    StockReserved,
)
from storefront.shared.errors import InsufficientStock, OutOfStock, ProductUnavailable
from storefront.shared.money import to_amount

FEATURED_LIMIT = 12


class ProductStatus(Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text(default="")
    price = Decimal(required=True, min_value=0, precision=12, scale=2)
    category = String(max_length=100, default="")
    image_url = String(max_length=500)
    rating = Float(min_value=0.0, max_value=5.0)
    stock_quantity = Integer(required=True, min_value=0, default=0)
    status = String(choices=ProductStatus, default=ProductStatus.ACTIVE.value)
    available = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_must_not_be_negative(self):
        if self.stock_quantity is not None and self.stock_quantity < 0:
            raise ValidationError({"stock_quantity": ["Stock quantity cannot be negative"]})

    @invariant.post
    def exhausted_or_inactive_product_is_unavailable(self):
        if self.available and (not self.stock_quantity or self.status == ProductStatus.INACTIVE.value):
            raise ValidationError({"available": ["Product without stock or inactive cannot be available"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        price,
        stock_quantity=0,
        description=None,
        category=None,
        image_url=None,
        rating=None,
    ):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            description=description or "",
            price=to_amount(price),
            category=category or "",
            image_url=image_url,
            rating=rating,
            stock_quantity=stock_quantity,
            status=ProductStatus.ACTIVE.value,
            available=stock_quantity > 0,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductAdded(
                product_id=str(product.id),
                name=name,
                category=product.category,
                price=product.price,
                stock_quantity=stock_quantity,
                added_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    @property
    def is_active(self):
        return self.status == ProductStatus.ACTIVE.value

    def ensure_can_supply(self, quantity):
        """Advisory check used when a shopper adds to or changes a cart."""
        if not self.is_active:
            raise ProductUnavailable(str(self.id))
        if not self.available or self.stock_quantity == 0:
            raise OutOfStock(str(self.id))
        if quantity > self.stock_quantity:
            raise InsufficientStock(str(self.id), quantity, self.stock_quantity)

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    def reserve(self, quantity, reference=None):
        """Take ``quantity`` units out of stock and return what remains."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if not self.is_active or not self.available:
            raise ProductUnavailable(str(self.id))
        if quantity > self.stock_quantity:
            raise InsufficientStock(str(self.id), quantity, self.stock_quantity)

        previous = self.stock_quantity
        with atomic_change(self):
            self.stock_quantity = previous - quantity
            if self.stock_quantity <= 0:
                self.stock_quantity = 0
                self.available = False
            self.updated_at = datetime.now(UTC)

        self.raise_(
            StockReserved(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                remaining=self.stock_quantity,
                reference=reference,
            )
        )
        return self.stock_quantity

    def replenish(self, quantity):
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        with atomic_change(self):
            self.stock_quantity += quantity
            self.available = self.is_active
            self.updated_at = datetime.now(UTC)

        self.raise_(
            StockReplenished(
                product_id=str(self.id),
                quantity=quantity,
                new_stock=self.stock_quantity,
            )
        )

    # -------------------------------------------------------------------
    # Catalog maintenance
    # -------------------------------------------------------------------
    def update_details(self, name=None, description=None, price=None, category=None, image_url=None, rating=None):
        if name is not None:
            self.name = name
        if description is not None:
            self.description = description
        if price is not None:
            self.price = to_amount(price)
        if category is not None:
            self.category = category
        if image_url is not None:
            self.image_url = image_url
        if rating is not None:
            self.rating = rating
        self.updated_at = datetime.now(UTC)

        self.raise_(ProductDetailsUpdated(product_id=str(self.id), name=self.name, price=self.price))

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"status": ["Product is already inactive"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = ProductStatus.INACTIVE.value
            self.available = False
            self.updated_at = now

        self.raise_(ProductDeactivated(product_id=str(self.id), deactivated_at=now))


@storefront.repository(part_of=Product)
class ProductRepository:
    """Read-side queries over the catalog. None of these mutate."""

    def _active(self):
        return self.query.filter(status=ProductStatus.ACTIVE.value).limit(None)

    def active(self) -> list[Product]:
        return self._active().order_by("name").all().items

    def in_category(self, category: str) -> list[Product]:
        return self._active().filter(category__iexact=category).order_by("name").all().items

    def search(self, term: str) -> list[Product]:
        criteria = Q(name__icontains=term) | Q(description__icontains=term) | Q(category__icontains=term)
        return self._active().filter(criteria).order_by("name").all().items

    def featured(self, limit: int = FEATURED_LIMIT) -> list[Product]:
        return self._active().order_by("-created_at").limit(limit).all().items

    def categories(self) -> list[str]:
        return sorted({product.category for product in self._active().all().items if product.category})
