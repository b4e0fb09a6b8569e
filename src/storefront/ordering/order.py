"""Order aggregate: the durable outcome of one paid (or attempted) checkout.

State machine, per idempotency reference:
    UNSEEN -> PENDING -> COMPLETE | FAILED

An order is created by the first payment event for its reference and is
never deleted. Gateway events may move it out of PENDING; once COMPLETE or
FAILED only an explicit admin update changes it. ``inventory_committed``
records that the ledger has been decremented for this order, which happens
at most once.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import NAMESPACE_URL, uuid5

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Decimal, HasMany, Identifier, Integer, String

from storefront.domain import storefront
from storefront.ordering.events import InventoryCommitted, LatePaymentReported, OrderPlaced, PaymentStatusChanged
from storefront.shared.money import line_total, to_amount

_ORDER_NAMESPACE = uuid5(NAMESPACE_URL, "storefront:order")


class PaymentStatus(Enum):
    PENDING = "PENDING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @classmethod
    def from_gateway(cls, state: str | None) -> "PaymentStatus":
        """Map a provider state (or an admin-supplied one) onto a payment status."""
        normalized = (state or "").strip().upper()
        if normalized in _GATEWAY_STATES:
            return _GATEWAY_STATES[normalized]
        raise ValidationError({"state": [f"Unknown payment state: {state}"]})


_GATEWAY_STATES = {
    "PENDING": PaymentStatus.PENDING,
    "PROCESSING": PaymentStatus.PENDING,
    "RETRY": PaymentStatus.PENDING,
    "COMPLETE": PaymentStatus.COMPLETE,
    "COMPLETED": PaymentStatus.COMPLETE,
    "FAILED": PaymentStatus.FAILED,
    "CANCELLED": PaymentStatus.FAILED,
    "CANCELED": PaymentStatus.FAILED,
}

_TERMINAL = {PaymentStatus.COMPLETE.value, PaymentStatus.FAILED.value}


def order_id_for(api_ref: str) -> str:
    return str(uuid5(_ORDER_NAMESPACE, api_ref))


@storefront.entity(part_of="Order")
class OrderLine:
    """Product data as it was when the order was placed."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    unit_price = Decimal(required=True, min_value=0, precision=12, scale=2)
    quantity = Integer(required=True, min_value=1)
    subtotal = Decimal(required=True, min_value=0, precision=14, scale=2)


@storefront.aggregate
class Order:
    api_ref = String(required=True, max_length=100, unique=True)
    checkout_id = String(max_length=255)
    tracking_id = String(max_length=255)
    customer_id = Identifier(required=True)
    total_amount = Decimal(required=True, min_value=0, precision=14, scale=2)
    currency = String(required=True, max_length=3)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    inventory_committed = Boolean(default=False)
    needs_review = Boolean(default=False)
    lines = HasMany(OrderLine)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def place(cls, api_ref, customer_id, status, currency, lines, checkout_id=None, tracking_id=None):
        """Create the single order for ``api_ref`` from snapshotted line data."""
        if not lines:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        now = datetime.now(UTC)
        order = cls(
            id=order_id_for(api_ref),
            api_ref=api_ref,
            checkout_id=checkout_id,
            tracking_id=tracking_id,
            customer_id=customer_id,
            total_amount=to_amount(0),
            currency=currency,
            payment_status=PaymentStatus(status).value,
            created_at=now,
            updated_at=now,
        )

        total = to_amount(0)
        for line in lines:
            subtotal = line_total(line["unit_price"], line["quantity"])
            order.add_lines(
                OrderLine(
                    product_id=line["product_id"],
                    product_name=line["product_name"],
                    unit_price=to_amount(line["unit_price"]),
                    quantity=line["quantity"],
                    subtotal=subtotal,
                )
            )
            total += subtotal
        order.total_amount = to_amount(total)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                api_ref=api_ref,
                customer_id=str(customer_id),
                total_amount=order.total_amount,
                currency=currency,
                payment_status=order.payment_status,
                line_count=len(lines),
                placed_at=now,
            )
        )
        return order

    @property
    def is_terminal(self):
        return self.payment_status in _TERMINAL

    @property
    def is_paid(self):
        return self.payment_status == PaymentStatus.COMPLETE.value

    # -------------------------------------------------------------------
    # Payment events
    # -------------------------------------------------------------------
    def apply_payment_event(self, status, checkout_id=None, tracking_id=None):
        """Apply a repeated gateway event for this order's reference.

        Returns True when the event changed the payment status. Terminal
        orders are never changed by gateway events; a COMPLETE reported for
        a FAILED order is flagged for review instead of being dropped.
        """
        status = PaymentStatus(status)
        now = datetime.now(UTC)

        if self.is_terminal or status.value == self.payment_status:
            if not self.is_terminal:
                self._record_gateway_ids(checkout_id, tracking_id)
            elif status is PaymentStatus.COMPLETE and not self.is_paid:
                self._flag_late_completion(checkout_id, tracking_id, now)
            self.updated_at = now
            return False

        previous = self.payment_status
        self.payment_status = status.value
        self._record_gateway_ids(checkout_id, tracking_id)
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                api_ref=self.api_ref,
                previous_status=previous,
                new_status=status.value,
                source="gateway",
                changed_at=now,
            )
        )
        return True

    @property
    def inventory_due(self):
        """Paid, but stock for its lines has not been taken yet."""
        return self.is_paid and not self.inventory_committed

    def change_status(self, status):
        """Explicit admin transition. Never touches inventory; clears ``needs_review``."""
        status = PaymentStatus(status)
        if status.value == self.payment_status:
            return

        now = datetime.now(UTC)
        previous = self.payment_status
        self.payment_status = status.value
        self.needs_review = False
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                api_ref=self.api_ref,
                previous_status=previous,
                new_status=status.value,
                source="admin",
                changed_at=now,
            )
        )

    def commit_inventory(self):
        if self.inventory_committed:
            raise ValidationError({"inventory_committed": ["Inventory already committed for this order"]})

        now = datetime.now(UTC)
        self.inventory_committed = True
        self.updated_at = now
        self.raise_(
            InventoryCommitted(
                order_id=str(self.id),
                api_ref=self.api_ref,
                line_count=len(self.lines),
                committed_at=now,
            )
        )

    def _flag_late_completion(self, checkout_id, tracking_id, now):
        self.needs_review = True
        self.raise_(
            LatePaymentReported(
                order_id=str(self.id),
                api_ref=self.api_ref,
                current_status=self.payment_status,
                reported_status=PaymentStatus.COMPLETE.value,
                checkout_id=checkout_id,
                tracking_id=tracking_id,
                reported_at=now,
            )
        )

    def _record_gateway_ids(self, checkout_id, tracking_id):
        if checkout_id:
            self.checkout_id = checkout_id
        if tracking_id:
            self.tracking_id = tracking_id


@storefront.repository(part_of=Order)
class OrderRepository:
    def with_ref(self, api_ref: str) -> Order | None:
        return self.query.filter(api_ref=api_ref).all().first

    def newest_first(self) -> list[Order]:
        return self.query.limit(None).order_by("-created_at").all().items

    def for_customer(self, customer_id) -> list[Order]:
        return self.query.filter(customer_id=customer_id).limit(None).order_by("-created_at").all().items
