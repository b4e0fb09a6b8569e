"""Typed read model of a session cart."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.items import find_cart
from storefront.inventory.product import Product
from storefront.shared.money import to_amount


@dataclass(frozen=True)
class CartLineView:
    id: str
    product_id: str
    product_name: str | None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class CartView:
    session_key: str
    id: str | None = None
    lines: list[CartLineView] = field(default_factory=list)
    total_items: int = 0
    total_amount: Decimal = Decimal("0.00")
    updated_at: datetime | None = None


def _product_name(product_id) -> str | None:
    try:
        return current_domain.repository_for(Product).get(product_id).name
    except ObjectNotFoundError:
        return None


def cart_view(cart: Cart) -> CartView:
    lines = [
        CartLineView(
            id=str(line.id),
            product_id=str(line.product_id),
            product_name=_product_name(line.product_id),
            quantity=line.quantity,
            unit_price=to_amount(line.unit_price),
            subtotal=line.subtotal,
        )
        for line in cart.lines
    ]
    return CartView(
        session_key=cart.session_key,
        id=str(cart.id),
        lines=lines,
        total_items=len(lines),
        total_amount=cart.total,
        updated_at=cart.updated_at,
    )


def get_cart(session_key: str) -> CartView:
    """The session's cart, or an empty view when none has been opened."""
    cart = find_cart(session_key)
    if cart is None:
        return CartView(session_key=session_key)
    return cart_view(cart)


def count(session_key: str) -> int:
    """Number of distinct lines in the session's cart."""
    cart = find_cart(session_key)
    return cart.line_count if cart is not None else 0
