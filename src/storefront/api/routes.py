"""FastAPI routes for the storefront: catalog, cart, checkout and orders."""

from fastapi import APIRouter, Depends, Header, Query, Request
from protean.exceptions import ExpectedVersionError, TransactionError
from protean.utils.globals import current_domain

from storefront.api.errors import error_response
from storefront.api.schemas import (
    AddProductRequest,
    AddToCartRequest,
    ApiResponse,
    CartResponse,
    CategoryRequest,
    CategoryResponse,
    CheckoutRequestBody,
    CheckoutResponse,
    ConfirmPaymentRequest,
    IntaSendWebhookPayload,
    OrderResponse,
    ProductResponse,
    RestockRequest,
    StatusUpdateRequest,
    UpdateCartItemRequest,
    UpdateCategoryRequest,
    UpdateProductRequest,
    envelope,
    to_response,
)
from storefront.cart import items as cart_items
from storefront.cart.view import count as cart_count
from storefront.cart.view import get_cart
from storefront.checkout.initiation import CheckoutItem, CheckoutSessionInitiator
from storefront.gateway.port import CheckoutContact, PaymentGateway
from storefront.inventory import queries as catalog
from storefront.inventory.catalog import AddProduct, DeactivateProduct, UpdateProductDetails
from storefront.inventory.category import CreateCategory, DeactivateCategory, UpdateCategory
from storefront.inventory.stock import RestockProduct
from storefront.ordering import queries as orders
from storefront.ordering.reconciliation import reconcile_payment
from storefront.ordering.status import update_order_status, update_payment_status
from storefront.shared.errors import BusinessRuleViolation, NotFound
from storefront.utils.logging import add_context, get_logger

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway


def get_initiator(gateway: PaymentGateway = Depends(get_gateway)) -> CheckoutSessionInitiator:
    custom = current_domain.config.get("custom", {}) or {}
    return CheckoutSessionInitiator(gateway, default_currency=custom.get("DEFAULT_CURRENCY") or "KES")


def _process(command):
    return current_domain.process(command, asynchronous=False)


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.get("", response_model=ApiResponse[list[ProductResponse]])
async def list_products():
    return envelope([to_response(p) for p in catalog.list_active()])


@product_router.get("/featured", response_model=ApiResponse[list[ProductResponse]])
async def featured_products():
    return envelope([to_response(p) for p in catalog.list_featured()])


@product_router.get("/categories", response_model=ApiResponse[list[str]])
async def product_categories():
    return envelope(catalog.list_categories())


@product_router.get("/search", response_model=ApiResponse[list[ProductResponse]])
async def search_products(term: str = Query(default="")):
    return envelope([to_response(p) for p in catalog.search(term)])


@product_router.get("/category/{category}", response_model=ApiResponse[list[ProductResponse]])
async def products_in_category(category: str):
    return envelope([to_response(p) for p in catalog.list_by_category(category)])


@product_router.get("/{product_id}", response_model=ApiResponse[ProductResponse])
async def get_product(product_id: str):
    return envelope(to_response(catalog.get_product(product_id)))


@product_router.post("", status_code=201, response_model=ApiResponse[ProductResponse])
async def add_product(body: AddProductRequest):
    product_id = _process(AddProduct(**body.model_dump()))
    return envelope(to_response(catalog.get_product(product_id)), "Product added")


@product_router.put("/{product_id}", response_model=ApiResponse[ProductResponse])
async def update_product(product_id: str, body: UpdateProductRequest):
    _process(UpdateProductDetails(product_id=product_id, **body.model_dump(exclude_none=True)))
    return envelope(to_response(catalog.get_product(product_id)), "Product updated")


@product_router.delete("/{product_id}", response_model=ApiResponse[ProductResponse])
async def deactivate_product(product_id: str):
    _process(DeactivateProduct(product_id=product_id))
    return envelope(to_response(catalog.get_product(product_id)), "Product deactivated")


@product_router.post("/{product_id}/stock", response_model=ApiResponse[ProductResponse])
async def restock_product(product_id: str, body: RestockRequest):
    _process(RestockProduct(product_id=product_id, quantity=body.quantity))
    return envelope(to_response(catalog.get_product(product_id)), "Stock replenished")


# ---------------------------------------------------------------------------
# Category Router
# ---------------------------------------------------------------------------
category_router = APIRouter(prefix="/categories", tags=["categories"])


@category_router.get("", response_model=ApiResponse[list[CategoryResponse]])
async def list_categories():
    return envelope([to_response(c) for c in catalog.list_category_records()])


@category_router.get("/name/{name}", response_model=ApiResponse[CategoryResponse])
async def get_category_by_name(name: str):
    return envelope(to_response(catalog.get_category_by_name(name)))


@category_router.get("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def get_category(category_id: str):
    return envelope(to_response(catalog.get_category(category_id)))


@category_router.post("", status_code=201, response_model=ApiResponse[CategoryResponse])
async def create_category(body: CategoryRequest):
    category_id = _process(CreateCategory(**body.model_dump()))
    return envelope(to_response(catalog.get_category(category_id)), "Category created")


@category_router.put("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def update_category(category_id: str, body: UpdateCategoryRequest):
    _process(UpdateCategory(category_id=category_id, **body.model_dump(exclude_none=True)))
    return envelope(to_response(catalog.get_category(category_id)), "Category updated")


@category_router.delete("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def deactivate_category(category_id: str):
    _process(DeactivateCategory(category_id=category_id))
    return envelope(to_response(catalog.get_category(category_id)), "Category deactivated")


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.post("/add", response_model=ApiResponse[CartResponse])
async def add_to_cart(body: AddToCartRequest):
    cart_items.add_item(body.session_key, body.product_id, body.quantity)
    return envelope(to_response(get_cart(body.session_key)), "Item added to cart")


@cart_router.get("/{session_key}", response_model=ApiResponse[CartResponse])
async def view_cart(session_key: str):
    return envelope(to_response(get_cart(session_key)))


@cart_router.get("/{session_key}/count", response_model=ApiResponse[int])
async def count_items(session_key: str):
    return envelope(cart_count(session_key))


@cart_router.put("/update", response_model=ApiResponse[CartResponse])
async def update_cart_item(body: UpdateCartItemRequest):
    cart_items.update_item(body.session_key, body.line_id, body.quantity)
    return envelope(to_response(get_cart(body.session_key)), "Cart updated")


@cart_router.delete("/item/{line_id}", response_model=ApiResponse[CartResponse])
async def remove_cart_item(line_id: str, session_key: str = Query(min_length=1)):
    cart_items.remove_item(session_key, line_id)
    return envelope(to_response(get_cart(session_key)), "Item removed from cart")


@cart_router.delete("/clear/{session_key}", response_model=ApiResponse[CartResponse])
async def clear_cart(session_key: str):
    cart_items.clear(session_key)
    return envelope(to_response(get_cart(session_key)), "Cart cleared")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("/checkout", status_code=201, response_model=ApiResponse[CheckoutResponse])
async def checkout(body: CheckoutRequestBody, initiator: CheckoutSessionInitiator = Depends(get_initiator)):
    """Open a hosted checkout. No order exists until the payment is reconciled."""
    add_context(api_ref=body.api_ref)
    contact = CheckoutContact(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone=body.phone,
    )
    if body.lines:
        items = [CheckoutItem(product_id=line.product_id, quantity=line.quantity) for line in body.lines]
        result = initiator.initiate(
            contact, items, body.api_ref, currency=body.currency, redirect_url=body.redirect_url
        )
    else:
        result = initiator.initiate_from_cart(
            body.session_key or "",
            contact,
            body.api_ref,
            currency=body.currency,
            redirect_url=body.redirect_url,
        )
    return envelope(to_response(result), "Checkout session created")


@order_router.post("/confirm", response_model=ApiResponse[OrderResponse])
async def confirm_payment(body: ConfirmPaymentRequest):
    """Redirect confirmation from the shopper's browser."""
    add_context(api_ref=body.api_ref)
    order = reconcile_payment(
        body.api_ref,
        body.state,
        checkout_id=body.checkout_id,
        tracking_id=body.tracking_id,
        source="confirmation",
    )
    return envelope(to_response(order), "Payment confirmed")


@order_router.post("/webhook/intasend", response_model=ApiResponse[OrderResponse])
async def intasend_webhook(
    body: IntaSendWebhookPayload,
    gateway: PaymentGateway = Depends(get_gateway),
    x_intasend_signature: str | None = Header(default=None),
):
    """Provider payment event. Failures answer 503 so the provider redelivers."""
    payload = body.model_dump()
    if not gateway.verify_webhook(payload, x_intasend_signature):
        return error_response(401, "Invalid webhook challenge")

    notice = gateway.parse_notice(payload)
    add_context(api_ref=notice.api_ref)
    try:
        order = reconcile_payment(
            notice.api_ref,
            notice.state,
            checkout_id=notice.session_id,
            tracking_id=notice.tracking_id,
            source="webhook",
        )
    except (NotFound, BusinessRuleViolation, ExpectedVersionError, TransactionError) as exc:
        logger.error("webhook_reconciliation_failed", api_ref=notice.api_ref, error=str(exc))
        return error_response(503, "Payment event could not be reconciled, retry delivery", {"api_ref": [notice.api_ref]})

    return envelope(to_response(order), "Payment event processed")


@order_router.get("", response_model=ApiResponse[list[OrderResponse]])
async def list_orders():
    return envelope([to_response(o) for o in orders.list_orders()])


@order_router.get("/ref/{api_ref}", response_model=ApiResponse[OrderResponse])
async def get_order_by_ref(api_ref: str):
    return envelope(to_response(orders.get_order_by_ref(api_ref)))


@order_router.get("/customer/{email}", response_model=ApiResponse[list[OrderResponse]])
async def orders_for_customer(email: str):
    return envelope([to_response(o) for o in orders.orders_for_customer(email)])


@order_router.get("/{order_id}", response_model=ApiResponse[OrderResponse])
async def get_order(order_id: str):
    return envelope(to_response(orders.get_order(order_id)))


@order_router.put("/ref/{api_ref}/status", response_model=ApiResponse[OrderResponse])
async def update_status_by_ref(api_ref: str, body: StatusUpdateRequest):
    return envelope(to_response(update_order_status(api_ref, body.status)), "Order status updated")


@order_router.put("/{order_id}/payment-status", response_model=ApiResponse[OrderResponse])
async def update_order_payment_status(order_id: str, body: StatusUpdateRequest):
    return envelope(to_response(update_payment_status(order_id, body.status)), "Payment status updated")