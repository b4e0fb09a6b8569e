"""Domain events for the CheckoutSession aggregate."""

from protean.fields import DateTime, Decimal, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="CheckoutSession")
class CheckoutSessionOpened:
    """The gateway accepted a hosted checkout for an idempotency reference."""

    __version__ = 1

    checkout_id = Identifier(required=True)
    api_ref = String(required=True, max_length=100)
    provider_session_id = String(required=True, max_length=255)
    email = String(required=True, max_length=254)
    amount = Decimal(required=True)
    currency = String(required=True, max_length=3)
    line_count = Integer(required=True)
    opened_at = DateTime(required=True)
