"""CheckoutSession aggregate: what was sent to and returned by the gateway.

A session is recorded only after the gateway has opened a hosted checkout,
and is keyed by the caller's idempotency reference (``api_ref``). It keeps
the priced lines the amount was computed from, because the provider's
webhook carries no cart contents.

Every reconciliation of a reference writes its session. Two concurrent
reconciliations of one reference therefore contend on the session's
version, and the loser is re-run after the winner has committed.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import NAMESPACE_URL, uuid5

from protean.exceptions import ValidationError
from protean.fields import DateTime, Decimal, HasMany, Identifier, Integer, String

from storefront.checkout.events import CheckoutSessionOpened
from storefront.domain import storefront
from storefront.shared.money import line_total, to_amount

_CHECKOUT_NAMESPACE = uuid5(NAMESPACE_URL, "storefront:checkout")


class GatewayState(Enum):
    PENDING = "PENDING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"


def checkout_id_for(api_ref: str) -> str:
    return str(uuid5(_CHECKOUT_NAMESPACE, api_ref))


@storefront.entity(part_of="CheckoutSession")
class CheckoutLine:
    """A product and quantity, priced when the checkout was opened."""

    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Decimal(required=True, min_value=0, precision=12, scale=2)

    @property
    def subtotal(self):
        return line_total(self.unit_price, self.quantity)


@storefront.aggregate
class CheckoutSession:
    api_ref = String(required=True, max_length=100, unique=True)
    provider_session_id = String(required=True, max_length=255)
    redirect_url = String(max_length=1000)
    state = String(choices=GatewayState, default=GatewayState.PENDING.value)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    email = String(required=True, max_length=254)
    phone = String(max_length=30)
    amount = Decimal(required=True, min_value=0, precision=12, scale=2)
    currency = String(required=True, max_length=3)
    lines = HasMany(CheckoutLine)
    reconciliation_count = Integer(default=0)
    last_reconciled_at = DateTime()
    created_at = DateTime()

    @classmethod
    def open(
        cls,
        api_ref,
        provider_session_id,
        redirect_url,
        state,
        contact,
        amount,
        currency,
        lines,
    ):
        if not lines:
            raise ValidationError({"lines": ["A checkout needs at least one line"]})

        now = datetime.now(UTC)
        session = cls(
            id=checkout_id_for(api_ref),
            api_ref=api_ref,
            provider_session_id=provider_session_id,
            redirect_url=redirect_url,
            state=_known_state(state),
            first_name=contact.get("first_name"),
            last_name=contact.get("last_name"),
            email=contact["email"],
            phone=contact.get("phone"),
            amount=to_amount(amount),
            currency=currency,
            created_at=now,
        )
        for line in lines:
            session.add_lines(
                CheckoutLine(
                    product_id=line["product_id"],
                    quantity=line["quantity"],
                    unit_price=to_amount(line["unit_price"]),
                )
            )

        session.raise_(
            CheckoutSessionOpened(
                checkout_id=str(session.id),
                api_ref=api_ref,
                provider_session_id=provider_session_id,
                email=session.email,
                amount=session.amount,
                currency=currency,
                line_count=len(lines),
                opened_at=now,
            )
        )
        return session

    @property
    def contact(self):
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
        }

    def record_reconciliation(self, state):
        """Note that a payment event for this reference has been applied."""
        self.state = _known_state(state)
        self.reconciliation_count = (self.reconciliation_count or 0) + 1
        self.last_reconciled_at = datetime.now(UTC)


def _known_state(state) -> str:
    try:
        return GatewayState(state).value
    except ValueError:
        return GatewayState.PENDING.value


@storefront.repository(part_of=CheckoutSession)
class CheckoutSessionRepository:
    def with_ref(self, api_ref: str) -> CheckoutSession | None:
        return self.query.filter(api_ref=api_ref).all().first
