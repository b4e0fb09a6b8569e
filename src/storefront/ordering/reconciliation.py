"""Payment reconciliation: turn a gateway payment event into order state.

Both delivery paths, the shopper's redirect confirmation and the provider
webhook, land here with the same command. For one idempotency reference:

* the first event creates the order (status taken from the event) with
  lines snapshotted from the recorded checkout and current product data;
* later events update it; terminal orders keep their status, and a
  COMPLETE reported for a FAILED order is logged and flagged for review;
* stock is taken from the ledger exactly once, on the first gateway
  COMPLETE for a paid order whose stock has not been taken yet.

Everything, including the customer lookup-or-create and the stock
decrements, happens in one unit of work: a missing product or a stock
shortfall leaves no order, no lines and no partial decrement behind.

Exclusivity: each run also writes the reference's CheckoutSession, so of
two concurrent runs only one commits; the other fails its version check
and is re-run by the handler, where it finds the order and takes the
update path. On relational stores the unique ``api_ref`` index rejects a
second insert at commit, which is retried the same way.
"""

from protean import handle
from protean.exceptions import TransactionError
from protean.fields import String
from protean.utils.globals import current_domain

from storefront.checkout.session import CheckoutSession
from storefront.domain import storefront
from storefront.identity.registry import find_or_create
from storefront.inventory.product import Product
from storefront.inventory.stock import load_product
from storefront.ordering.order import Order, PaymentStatus
from storefront.ordering.queries import OrderView, get_order_by_ref
from storefront.shared.errors import CheckoutNotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Order")
class ReconcilePayment:
    api_ref = String(required=True, max_length=100)
    state = String(required=True, max_length=20)
    checkout_id = String(max_length=255)
    tracking_id = String(max_length=255)
    source = String(max_length=20, default="confirmation")  # confirmation, webhook


@storefront.command_handler(part_of=Order, retries=3, backoff="fixed", retry_exceptions=[TransactionError])
class ReconciliationHandler:
    @handle(ReconcilePayment)
    def reconcile_payment(self, command):
        status = PaymentStatus.from_gateway(command.state)

        sessions = current_domain.repository_for(CheckoutSession)
        checkout = sessions.with_ref(command.api_ref)
        if checkout is None:
            raise CheckoutNotFound(command.api_ref)

        orders = current_domain.repository_for(Order)
        order = orders.with_ref(command.api_ref)
        products: dict[str, Product] = {}

        if order is None:
            order = self._place(checkout, status, command, products)
            outcome = "created"
        else:
            previous = order.payment_status
            changed = order.apply_payment_event(status.value, command.checkout_id, command.tracking_id)
            outcome = "transitioned" if changed else "unchanged"
            if status is PaymentStatus.COMPLETE and previous == PaymentStatus.FAILED.value:
                outcome = "needs_review"
                logger.error(
                    "payment_completed_after_terminal_status",
                    api_ref=command.api_ref,
                    source=command.source,
                    previous_status=previous,
                    reported_status=status.value,
                    tracking_id=command.tracking_id,
                )

        # Also covers an order marked COMPLETE by staff before the gateway confirmed it.
        if status is PaymentStatus.COMPLETE and order.inventory_due:
            self._commit_inventory(order, products)

        checkout.record_reconciliation(order.payment_status)
        orders.add(order)
        sessions.add(checkout)

        logger.info(
            "payment_reconciled",
            api_ref=command.api_ref,
            source=command.source,
            outcome=outcome,
            payment_status=order.payment_status,
            inventory_committed=order.inventory_committed,
        )
        return str(order.id)

    def _place(self, checkout, status, command, products):
        customer = find_or_create(checkout.first_name, checkout.last_name, checkout.email, checkout.phone)

        lines = []
        for line in checkout.lines:
            product = self._product(line.product_id, products)
            lines.append(
                {
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "unit_price": line.unit_price,
                    "quantity": line.quantity,
                }
            )

        return Order.place(
            api_ref=checkout.api_ref,
            customer_id=str(customer.id),
            status=status.value,
            currency=checkout.currency,
            lines=lines,
            checkout_id=command.checkout_id or checkout.provider_session_id,
            tracking_id=command.tracking_id,
        )

    def _commit_inventory(self, order, products):
        for line in order.lines:
            self._product(line.product_id, products).reserve(line.quantity, reference=order.api_ref)

        repo = current_domain.repository_for(Product)
        for product in products.values():
            repo.add(product)
        order.commit_inventory()

    def _product(self, product_id, products) -> Product:
        key = str(product_id)
        if key not in products:
            products[key] = load_product(key)
        return products[key]


def reconcile_payment(
    api_ref: str,
    state: str,
    checkout_id: str | None = None,
    tracking_id: str | None = None,
    source: str = "confirmation",
) -> OrderView:
    """Apply one payment event for ``api_ref`` and return the resulting order.

    Safe to call any number of times for the same event.
    """
    current_domain.process(
        ReconcilePayment(
            api_ref=api_ref,
            state=state,
            checkout_id=checkout_id,
            tracking_id=tracking_id,
            source=source,
        ),
        asynchronous=False,
    )
    return get_order_by_ref(api_ref)
