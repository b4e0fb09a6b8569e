"""Catalog maintenance: adding, editing and withdrawing products."""

from protean import handle
from protean.fields import Decimal, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.product import Product
from storefront.inventory.stock import load_product


@storefront.command(part_of="Product")
class AddProduct:
    name = String(required=True, max_length=255)
    description = Text()
    price = Decimal(required=True, min_value=0)
    category = String(max_length=100)
    image_url = String(max_length=500)
    rating = Float(min_value=0.0, max_value=5.0)
    stock_quantity = Integer(min_value=0, default=0)


@storefront.command(part_of="Product")
class UpdateProductDetails:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    description = Text()
    price = Decimal(min_value=0)
    category = String(max_length=100)
    image_url = String(max_length=500)
    rating = Float(min_value=0.0, max_value=5.0)


@storefront.command(part_of="Product")
class DeactivateProduct:
    product_id = Identifier(required=True)


@storefront.command_handler(part_of=Product)
class CatalogHandler:
    @handle(AddProduct)
    def add_product(self, command):
        product = Product.create(
            name=command.name,
            price=command.price,
            stock_quantity=command.stock_quantity or 0,
            description=command.description,
            category=command.category,
            image_url=command.image_url,
            rating=command.rating,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(UpdateProductDetails)
    def update_product_details(self, command):
        product = load_product(command.product_id)
        product.update_details(
            name=command.name,
            description=command.description,
            price=command.price,
            category=command.category,
            image_url=command.image_url,
            rating=command.rating,
        )
        current_domain.repository_for(Product).add(product)

    @handle(DeactivateProduct)
    def deactivate_product(self, command):
        product = load_product(command.product_id)
        product.deactivate()
        current_domain.repository_for(Product).add(product)
