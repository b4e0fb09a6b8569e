"""Configurable fake hosted-checkout gateway for development and testing.

Simulates the provider without any network traffic. It can be told to
succeed, reject, or time out, and records every call it receives so tests
can assert that initiation talked to the provider exactly once.
"""

from typing import Any
from uuid import uuid4

from storefront.gateway.port import CheckoutRequest, HostedCheckout, PaymentGateway
from storefront.shared.errors import GatewayError

FAKE_CHALLENGE = "test-challenge"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, webhook_challenge: str = FAKE_CHALLENGE) -> None:
        self.webhook_challenge = webhook_challenge
        self.should_succeed: bool = True
        self.should_time_out: bool = False
        self.failure_reason: str = "Checkout rejected"
        self.calls: list[dict[str, Any]] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Checkout rejected",
        should_time_out: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.should_time_out = should_time_out

    def open_checkout(self, request: CheckoutRequest) -> HostedCheckout:
        self.calls.append(
            {
                "method": "open_checkout",
                "api_ref": request.api_ref,
                "amount": request.amount,
                "currency": request.currency,
                "email": request.contact.email,
            }
        )

        if self.should_time_out:
            raise GatewayError("Payment gateway timed out")
        if not self.should_succeed:
            raise GatewayError(self.failure_reason, status_code=400)

        session_id = f"fake_chk_{uuid4().hex[:12]}"
        return HostedCheckout(
            session_id=session_id,
            redirect_url=f"https://pay.fake-gateway.test/checkout/{session_id}",
            state="PENDING",
            api_ref=request.api_ref,
        )

    def verify_webhook(self, payload: dict[str, Any], signature: str | None = None) -> bool:
        return payload.get("challenge") == self.webhook_challenge or signature == self.webhook_challenge
