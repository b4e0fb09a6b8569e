"""Payment gateway construction.

The gateway is built once from the domain configuration and handed to
whoever needs it; there is no module-level gateway instance.

- ``fake``: FakeGateway, for development and tests
- ``intasend``: IntaSendGateway over HTTP
"""

from collections.abc import Mapping
from typing import Any

from storefront.gateway.fake_adapter import FakeGateway
from storefront.gateway.intasend_adapter import IntaSendGateway
from storefront.gateway.port import CheckoutContact, CheckoutRequest, HostedCheckout, PaymentGateway, PaymentNotice

__all__ = [
    "CheckoutContact",
    "CheckoutRequest",
    "FakeGateway",
    "HostedCheckout",
    "IntaSendGateway",
    "PaymentGateway",
    "PaymentNotice",
    "build_gateway",
]


def build_gateway(config: Mapping[str, Any]) -> PaymentGateway:
    """Build the configured gateway from a domain config (its ``custom`` section)."""
    settings = config.get("custom", {}) or {}
    kind = str(settings.get("GATEWAY") or "fake").lower()
    challenge = str(settings.get("GATEWAY_WEBHOOK_CHALLENGE") or "")

    if kind == "fake":
        return FakeGateway(webhook_challenge=challenge) if challenge else FakeGateway()

    if kind == "intasend":
        return IntaSendGateway(
            api_url=str(settings.get("GATEWAY_API_URL")),
            api_key=str(settings.get("GATEWAY_API_KEY") or ""),
            webhook_challenge=challenge,
            timeout=float(settings.get("GATEWAY_TIMEOUT_SECONDS") or 10),
        )

    raise ValueError(f"Unknown payment gateway: {kind}")
