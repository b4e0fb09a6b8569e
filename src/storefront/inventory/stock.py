"""Stock reservation and replenishment: commands, handler and ledger entry points."""

from dataclasses import dataclass

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.inventory.product import Product
from storefront.shared.errors import ProductNotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reservation:
    ok: bool
    remaining: int


@storefront.command(part_of="Product")
class ReserveStock:
    """Take stock out of a product. Fails instead of overselling."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    reference = String(max_length=100)


@storefront.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


def load_product(product_id) -> Product:
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        raise ProductNotFound(str(product_id)) from None


@storefront.command_handler(part_of=Product)
class StockHandler:
    @handle(ReserveStock)
    def reserve_stock(self, command):
        product = load_product(command.product_id)
        remaining = product.reserve(command.quantity, reference=command.reference)
        current_domain.repository_for(Product).add(product)

        logger.info(
            "stock_reserved",
            product_id=str(product.id),
            quantity=command.quantity,
            remaining=remaining,
        )
        return remaining

    @handle(RestockProduct)
    def restock_product(self, command):
        product = load_product(command.product_id)
        product.replenish(command.quantity)
        current_domain.repository_for(Product).add(product)
        return product.stock_quantity


def reserve_stock(product_id: str, quantity: int, reference: str | None = None) -> Reservation:
    """Atomically decrement stock for one product.

    Raises ``InsufficientStock`` when ``quantity`` exceeds the live stock and
    ``ProductUnavailable`` when the product is inactive or flagged out of
    stock. Concurrent callers never oversell: a stale write is rejected at
    commit and re-run against the current row.
    """
    remaining = current_domain.process(
        ReserveStock(product_id=product_id, quantity=quantity, reference=reference),
        asynchronous=False,
    )
    return Reservation(ok=True, remaining=remaining)
