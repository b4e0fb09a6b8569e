"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Decimal, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """The first payment event for an idempotency reference produced an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    api_ref = String(required=True, max_length=100)
    customer_id = Identifier(required=True)
    total_amount = Decimal(required=True)
    currency = String(required=True, max_length=3)
    payment_status = String(required=True, max_length=20)
    line_count = Integer(required=True)
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    api_ref = String(required=True, max_length=100)
    previous_status = String(required=True, max_length=20)
    new_status = String(required=True, max_length=20)
    source = String(max_length=20)  # gateway, admin
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class InventoryCommitted:
    """Stock for every line of a paid order was taken from the ledger."""

    __version__ = 1

    order_id = Identifier(required=True)
    api_ref = String(required=True, max_length=100)
    line_count = Integer(required=True)
    committed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class LatePaymentReported:
    """The gateway reported COMPLETE for an order that had already FAILED.

    The order keeps its status; staff reconcile the payment by hand.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    api_ref = String(required=True, max_length=100)
    current_status = String(required=True, max_length=20)
    reported_status = String(required=True, max_length=20)
    checkout_id = String(max_length=255)
    tracking_id = String(max_length=255)
    reported_at = DateTime(required=True)
