"""Checkout initiation: price the lines, open a hosted checkout, record it.

The amount is always computed here from current catalog prices; a total
sent by the client is never trusted. The gateway is called exactly once
per initiation. If it fails, nothing is written locally and the error is
raised to the caller. Only after the gateway has answered is the
``CheckoutSession`` recorded. No Order exists until a payment event is
reconciled.

A reference is claimed before the duplicate check and held until the
session is recorded, so a concurrent initiation with the same reference in
this process is refused before it reaches the gateway. Across processes
the unique ``api_ref`` refuses the second record, but both may already have
called the gateway; workers must not share references.
"""

import json
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Decimal as DecimalField
from protean.fields import String, Text
from protean.utils.globals import current_domain

from storefront.cart.items import find_cart
from storefront.checkout.session import CheckoutSession
from storefront.domain import storefront
from storefront.gateway.port import CheckoutContact, CheckoutRequest, PaymentGateway
from storefront.identity.customer import normalize_email
from storefront.inventory.stock import load_product
from storefront.shared.money import line_total, normalize_currency, to_amount
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutItem:
    product_id: str
    quantity: int


@dataclass(frozen=True)
class InitiatedCheckout:
    api_ref: str
    redirect_url: str
    provider_session_id: str
    state: str
    amount: Decimal
    currency: str


@storefront.command(part_of="CheckoutSession")
class RecordCheckoutSession:
    api_ref = String(required=True, max_length=100)
    provider_session_id = String(required=True, max_length=255)
    redirect_url = String(max_length=1000)
    state = String(max_length=20)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    email = String(required=True, max_length=254)
    phone = String(max_length=30)
    amount = DecimalField(required=True, min_value=0)
    currency = String(required=True, max_length=3)
    lines = Text(required=True)  # JSON: [{product_id, quantity, unit_price}]


@storefront.command_handler(part_of=CheckoutSession)
class CheckoutSessionHandler:
    @handle(RecordCheckoutSession)
    def record_checkout_session(self, command):
        lines = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
        session = CheckoutSession.open(
            api_ref=command.api_ref,
            provider_session_id=command.provider_session_id,
            redirect_url=command.redirect_url,
            state=command.state,
            contact={
                "first_name": command.first_name,
                "last_name": command.last_name,
                "email": command.email,
                "phone": command.phone,
            },
            amount=command.amount,
            currency=command.currency,
            lines=lines,
        )
        current_domain.repository_for(CheckoutSession).add(session)
        return str(session.id)


def find_checkout(api_ref: str) -> CheckoutSession | None:
    return current_domain.repository_for(CheckoutSession).with_ref(api_ref)


class ReferenceClaims:
    """References whose checkout is being opened right now."""

    def __init__(self) -> None:
        self._held: set[str] = set()
        self._lock = threading.Lock()

    def __contains__(self, api_ref: str) -> bool:
        with self._lock:
            return api_ref in self._held

    @contextmanager
    def hold(self, api_ref: str):
        with self._lock:
            if api_ref in self._held:
                raise ValidationError({"api_ref": [f"A checkout is already being opened for reference {api_ref}"]})
            self._held.add(api_ref)
        try:
            yield
        finally:
            with self._lock:
                self._held.discard(api_ref)


# Shared by every initiator in the process; routes build one per request.
reference_claims = ReferenceClaims()


class CheckoutSessionInitiator:
    """Opens hosted checkouts through an explicitly supplied gateway."""

    def __init__(
        self,
        gateway: PaymentGateway,
        default_currency: str = "KES",
        claims: ReferenceClaims | None = None,
    ) -> None:
        self.gateway = gateway
        self.default_currency = default_currency
        self.claims = claims or reference_claims

    def initiate(
        self,
        contact: CheckoutContact,
        items: list[CheckoutItem],
        api_ref: str,
        currency: str | None = None,
        redirect_url: str | None = None,
    ) -> InitiatedCheckout:
        api_ref = (api_ref or "").strip()
        if not api_ref:
            raise ValidationError({"api_ref": ["An idempotency reference is required"]})
        if not items:
            raise ValidationError({"lines": ["A checkout needs at least one line"]})
        if any(item.quantity is None or item.quantity < 1 for item in items):
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        contact = CheckoutContact(
            first_name=contact.first_name,
            last_name=contact.last_name,
            email=normalize_email(contact.email),
            phone=contact.phone,
        )
        currency = normalize_currency(currency, self.default_currency)

        with self.claims.hold(api_ref):
            return self._open(contact, items, api_ref, currency, redirect_url)

    def _open(self, contact, items, api_ref, currency, redirect_url) -> InitiatedCheckout:
        if find_checkout(api_ref) is not None:
            raise ValidationError({"api_ref": [f"A checkout already exists for reference {api_ref}"]})

        priced = self._price(items)
        amount = to_amount(sum((line_total(line["unit_price"], line["quantity"]) for line in priced), Decimal("0")))

        hosted = self.gateway.open_checkout(
            CheckoutRequest(
                contact=contact,
                amount=amount,
                currency=currency,
                api_ref=api_ref,
                redirect_url=redirect_url,
            )
        )

        current_domain.process(
            RecordCheckoutSession(
                api_ref=api_ref,
                provider_session_id=hosted.session_id,
                redirect_url=hosted.redirect_url,
                state=hosted.state,
                first_name=contact.first_name,
                last_name=contact.last_name,
                email=contact.email,
                phone=contact.phone,
                amount=amount,
                currency=currency,
                lines=json.dumps(priced),
            ),
            asynchronous=False,
        )

        logger.info(
            "checkout_initiated",
            api_ref=api_ref,
            provider_session_id=hosted.session_id,
            amount=str(amount),
            currency=currency,
        )
        return InitiatedCheckout(
            api_ref=api_ref,
            redirect_url=hosted.redirect_url,
            provider_session_id=hosted.session_id,
            state=hosted.state,
            amount=amount,
            currency=currency,
        )

    def initiate_from_cart(
        self,
        session_key: str,
        contact: CheckoutContact,
        api_ref: str,
        currency: str | None = None,
        redirect_url: str | None = None,
    ) -> InitiatedCheckout:
        """Initiate with the lines currently in a session's cart."""
        cart = find_cart(session_key)
        if cart is None or not cart.lines:
            raise ValidationError({"session_key": ["Cart is empty"]})

        items = [CheckoutItem(product_id=str(line.product_id), quantity=line.quantity) for line in cart.lines]
        return self.initiate(contact, items, api_ref, currency=currency, redirect_url=redirect_url)

    def _price(self, items: list[CheckoutItem]) -> list[dict]:
        priced = []
        for item in items:
            product = load_product(item.product_id)
            priced.append(
                {
                    "product_id": str(product.id),
                    "quantity": item.quantity,
                    "unit_price": str(to_amount(product.price)),
                }
            )
        return priced
