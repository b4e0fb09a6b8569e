"""IntaSend hosted-checkout adapter.

Opens checkout sessions with ``POST {api_url}/checkout/`` authenticated by
the public API key header. The idempotency reference travels as ``api_ref``
and comes back on every webhook for that purchase. The call is bounded by
the configured timeout and is never retried here: a second attempt could
open a second provider session for the same purchase.

IntaSend webhooks carry a ``challenge`` string configured on the merchant
dashboard; a payload whose challenge does not match is rejected.
"""

import hmac
from typing import Any

import httpx

from storefront.gateway.port import CheckoutRequest, HostedCheckout, PaymentGateway
from storefront.shared.errors import GatewayError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

API_KEY_HEADER = "X-IntaSend-Public-API-Key"


class IntaSendGateway(PaymentGateway):
    def __init__(
        self,
        api_url: str,
        api_key: str,
        webhook_challenge: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.webhook_challenge = webhook_challenge
        self._client = httpx.Client(
            base_url=api_url.rstrip("/") + "/",
            headers={API_KEY_HEADER: api_key, "Accept": "application/json"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def open_checkout(self, request: CheckoutRequest) -> HostedCheckout:
        payload = {
            "first_name": request.contact.first_name,
            "last_name": request.contact.last_name,
            "email": request.contact.email,
            "phone_number": request.contact.phone,
            "amount": float(request.amount),
            "currency": request.currency,
            "api_ref": request.api_ref,
            "redirect_url": request.redirect_url,
        }

        try:
            response = self._client.post("checkout/", json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("gateway_timeout", api_ref=request.api_ref)
            raise GatewayError("Payment gateway timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("gateway_unreachable", api_ref=request.api_ref, error=str(exc))
            raise GatewayError(f"Payment gateway unreachable: {exc}") from exc

        if response.is_error:
            logger.warning("gateway_rejected", api_ref=request.api_ref, status_code=response.status_code)
            raise GatewayError(
                f"Payment gateway rejected the checkout ({response.status_code})",
                status_code=response.status_code,
            )

        try:
            body = response.json()
            session_id = str(body["id"])
            redirect_url = body["url"]
        except (ValueError, KeyError, TypeError) as exc:
            raise GatewayError("Payment gateway returned an unreadable checkout") from exc

        logger.info("gateway_checkout_opened", api_ref=request.api_ref, session_id=session_id)
        return HostedCheckout(
            session_id=session_id,
            redirect_url=redirect_url,
            state=str(body.get("state") or "PENDING"),
            api_ref=str(body.get("api_ref") or request.api_ref),
        )

    def verify_webhook(self, payload: dict[str, Any], signature: str | None = None) -> bool:
        presented = payload.get("challenge") or signature or ""
        return bool(self.webhook_challenge) and hmac.compare_digest(str(presented), self.webhook_challenge)

    def close(self) -> None:
        self._client.close()
