"""Cart line management: commands, handler and session-keyed entry points.

Each mutation is one command handled in one unit of work. Opening the cart
is a separate, idempotent step so that every line change is an update of an
existing cart: a concurrent stale write then fails its version check and is
re-run against the current lines instead of overwriting them.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError, TransactionError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart, cart_id_for
from storefront.domain import storefront
from storefront.inventory.stock import load_product
from storefront.shared.errors import CartItemNotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Cart")
class OpenCart:
    session_key = String(required=True, max_length=255)


@storefront.command(part_of="Cart")
class AddCartItem:
    session_key = String(required=True, max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class UpdateCartItem:
    session_key = String(required=True, max_length=255)
    line_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Cart")
class RemoveCartItem:
    session_key = String(required=True, max_length=255)
    line_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    session_key = String(required=True, max_length=255)


def find_cart(session_key) -> Cart | None:
    try:
        return current_domain.repository_for(Cart).get(cart_id_for(session_key))
    except ObjectNotFoundError:
        return None


@storefront.command_handler(part_of=Cart, retries=3, backoff="fixed", retry_exceptions=[TransactionError])
class CartItemsHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        cart = find_cart(command.session_key)
        if cart is None:
            cart = Cart.open(command.session_key)
            current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(AddCartItem)
    def add_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(cart_id_for(command.session_key))
        product = load_product(command.product_id)

        product.ensure_can_supply(cart.quantity_after_adding(product.id, command.quantity))
        line = cart.add_item(product_id=product.id, quantity=command.quantity, unit_price=product.price)
        repo.add(cart)

        logger.debug("cart_item_added", session_key=command.session_key, product_id=str(product.id))
        return str(line.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = find_cart(command.session_key)
        if cart is None:
            raise CartItemNotFound(str(command.line_id))

        line = cart.line(command.line_id)
        load_product(line.product_id).ensure_can_supply(command.quantity)
        cart.update_quantity(command.line_id, command.quantity)
        repo.add(cart)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        cart = find_cart(command.session_key)
        if cart is None:
            raise CartItemNotFound(str(command.line_id))

        cart.remove_line(command.line_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = find_cart(command.session_key)
        if cart is not None and cart.lines:
            cart.clear()
            current_domain.repository_for(Cart).add(cart)


def _process(command):
    return current_domain.process(command, asynchronous=False)


def add_item(session_key: str, product_id: str, quantity: int) -> str:
    """Add ``quantity`` of a product to the session's cart; returns the line id."""
    _process(OpenCart(session_key=session_key))
    return _process(AddCartItem(session_key=session_key, product_id=product_id, quantity=quantity))


def update_item(session_key: str, line_id: str, quantity: int) -> None:
    _process(UpdateCartItem(session_key=session_key, line_id=line_id, quantity=quantity))


def remove_item(session_key: str, line_id: str) -> None:
    _process(RemoveCartItem(session_key=session_key, line_id=line_id))


def clear(session_key: str) -> None:
    _process(ClearCart(session_key=session_key))
