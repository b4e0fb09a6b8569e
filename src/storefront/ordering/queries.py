"""Order and payment status reads, as typed views."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from storefront.identity.customer import Customer
from storefront.ordering.order import Order
from storefront.shared.errors import OrderNotFound
from storefront.shared.money import to_amount


@dataclass(frozen=True)
class OrderLineView:
    id: str
    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: int
    subtotal: Decimal


@dataclass(frozen=True)
class OrderView:
    id: str
    api_ref: str
    customer_id: str
    total_amount: Decimal
    currency: str
    payment_status: str
    inventory_committed: bool
    needs_review: bool
    checkout_id: str | None = None
    tracking_id: str | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    lines: list[OrderLineView] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _customer(customer_id) -> Customer | None:
    try:
        return current_domain.repository_for(Customer).get(customer_id)
    except ObjectNotFoundError:
        return None


def order_view(order: Order, customer: Customer | None = None) -> OrderView:
    customer = customer or _customer(order.customer_id)
    return OrderView(
        id=str(order.id),
        api_ref=order.api_ref,
        customer_id=str(order.customer_id),
        total_amount=to_amount(order.total_amount),
        currency=order.currency,
        payment_status=order.payment_status,
        inventory_committed=bool(order.inventory_committed),
        needs_review=bool(order.needs_review),
        checkout_id=order.checkout_id,
        tracking_id=order.tracking_id,
        customer_name=customer.full_name if customer else None,
        customer_email=customer.email if customer else None,
        lines=[
            OrderLineView(
                id=str(line.id),
                product_id=str(line.product_id),
                product_name=line.product_name,
                unit_price=to_amount(line.unit_price),
                quantity=line.quantity,
                subtotal=to_amount(line.subtotal),
            )
            for line in order.lines
        ],
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def list_orders() -> list[OrderView]:
    """All orders, newest first."""
    return [order_view(order) for order in current_domain.repository_for(Order).newest_first()]


def get_order(order_id: str) -> OrderView:
    try:
        order = current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise OrderNotFound(str(order_id)) from None
    return order_view(order)


def get_order_by_ref(api_ref: str) -> OrderView:
    order = current_domain.repository_for(Order).with_ref(api_ref)
    if order is None:
        raise OrderNotFound(api_ref)
    return order_view(order)


def orders_for_customer(email: str) -> list[OrderView]:
    try:
        customer = current_domain.repository_for(Customer).with_email(email)
    except ValidationError:
        return []
    if customer is None:
        return []
    orders = current_domain.repository_for(Order).for_customer(str(customer.id))
    return [order_view(order, customer) for order in orders]
