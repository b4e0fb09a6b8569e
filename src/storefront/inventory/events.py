"""Domain events for the Product and Category aggregates."""

from protean.fields import DateTime, Decimal, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductAdded:
    """A product was added to the catalog."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    category = String(max_length=100)
    price = Decimal(required=True)
    stock_quantity = Integer(required=True)
    added_at = DateTime(required=True)


@storefront.event(part_of="Product")
class ProductDetailsUpdated:
    """Name, description, price, category or media of a product changed."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Decimal(required=True)


@storefront.event(part_of="Product")
class StockReserved:
    """Stock was taken from a product, either directly or by an order."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    remaining = Integer(required=True)
    reference = String(max_length=100)


@storefront.event(part_of="Product")
class StockReplenished:
    """Stock was added back to a product."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_stock = Integer(required=True)


@storefront.event(part_of="Product")
class ProductDeactivated:
    """A product was withdrawn from sale."""

    __version__ = 1

    product_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@storefront.event(part_of="Category")
class CategoryCreated:
    """A new product category was created."""

    __version__ = 1

    category_id = Identifier(required=True)
    name = String(required=True, max_length=100)
