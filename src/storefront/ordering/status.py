"""Explicit payment status updates made by staff.

These are the only way a COMPLETE or FAILED order can change status. They
never move inventory: stock is the reconciler's concern alone.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.ordering.order import Order, PaymentStatus
from storefront.ordering.queries import OrderView, get_order, get_order_by_ref
from storefront.shared.errors import OrderNotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    api_ref = String(required=True, max_length=100)
    status = String(required=True, max_length=20)


@storefront.command(part_of="Order")
class UpdatePaymentStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.with_ref(command.api_ref)
        if order is None:
            raise OrderNotFound(command.api_ref)
        self._change(repo, order, command.status)

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        repo = current_domain.repository_for(Order)
        try:
            order = repo.get(command.order_id)
        except ObjectNotFoundError:
            raise OrderNotFound(str(command.order_id)) from None
        self._change(repo, order, command.status)

    def _change(self, repo, order, status):
        previous = order.payment_status
        order.change_status(PaymentStatus.from_gateway(status).value)
        repo.add(order)
        logger.info(
            "payment_status_overridden",
            api_ref=order.api_ref,
            previous_status=previous,
            new_status=order.payment_status,
        )


def update_order_status(api_ref: str, status: str) -> OrderView:
    current_domain.process(UpdateOrderStatus(api_ref=api_ref, status=status), asynchronous=False)
    return get_order_by_ref(api_ref)


def update_payment_status(order_id: str, status: str) -> OrderView:
    current_domain.process(UpdatePaymentStatus(order_id=order_id, status=status), asynchronous=False)
    return get_order(order_id)
