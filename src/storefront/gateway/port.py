"""Payment gateway port (abstract interface).

Defines the contract every hosted-checkout adapter implements, so the
initiator and the webhook route work the same against IntaSend in
production and the fake gateway in development and tests.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class CheckoutContact:
    first_name: str
    last_name: str
    email: str
    phone: str | None = None


@dataclass(frozen=True)
class CheckoutRequest:
    """What is sent to the provider to open a hosted checkout."""

    contact: CheckoutContact
    amount: Decimal
    currency: str
    api_ref: str
    redirect_url: str | None = None


@dataclass(frozen=True)
class HostedCheckout:
    """What the provider returns for an opened checkout."""

    session_id: str
    redirect_url: str
    state: str
    api_ref: str


@dataclass(frozen=True)
class PaymentNotice:
    """A payment event delivered by the provider's webhook."""

    api_ref: str
    state: str
    session_id: str | None = None
    tracking_id: str | None = None


class PaymentGateway(ABC):
    """Abstract hosted-checkout gateway."""

    @abstractmethod
    def open_checkout(self, request: CheckoutRequest) -> HostedCheckout:
        """Open a hosted checkout session. Raises ``GatewayError`` on any failure."""
        ...

    @abstractmethod
    def verify_webhook(self, payload: dict[str, Any], signature: str | None = None) -> bool:
        """Check that a webhook payload really comes from the provider."""
        ...

    def parse_notice(self, payload: dict[str, Any]) -> PaymentNotice:
        """Translate a raw webhook body into a ``PaymentNotice``."""
        return PaymentNotice(
            api_ref=str(payload.get("api_ref") or ""),
            state=str(payload.get("state") or ""),
            session_id=_optional_str(payload.get("checkout_id") or payload.get("id")),
            tracking_id=_optional_str(payload.get("invoice_id") or payload.get("tracking_id")),
        )

    def close(self) -> None:  # noqa: B027
        """Release any pooled connections."""


def _optional_str(value: Any) -> str | None:
    return None if value in (None, "") else str(value)
