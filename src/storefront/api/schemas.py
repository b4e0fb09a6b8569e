"""Pydantic request/response schemas for the storefront HTTP API.

These are the external contracts, kept apart from the internal Protean
commands. Read models reach the wire only through ``to_response``, which
has one typed conversion per view.
"""

from datetime import datetime
from decimal import Decimal
from functools import singledispatch
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from storefront.cart.view import CartLineView, CartView
from storefront.checkout.initiation import InitiatedCheckout
from storefront.inventory.queries import CategoryView, ProductView
from storefront.ordering.queries import OrderLineView, OrderView

Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: T | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Any = None


def envelope(data: Any = None, message: str | None = None) -> dict:
    return {"success": True, "message": message, "data": data}


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
class AddProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    price: Decimal = Field(ge=0)
    category: str | None = None
    image_url: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)
    stock_quantity: int = Field(default=0, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Kikoy Beach Towel",
                    "description": "Hand-woven cotton",
                    "price": 1500.00,
                    "category": "Home",
                    "stock_quantity": 40,
                }
            ]
        }
    }


class UpdateProductRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0)
    category: str | None = None
    image_url: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str
    price: Money
    category: str
    image_url: str | None = None
    rating: float | None = None
    stock_quantity: int
    status: str
    available: bool
    created_at: datetime | None = None


class CategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=20)


class UpdateCategoryRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=20)


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    icon: str | None = None
    is_active: bool


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    session_key: str = Field(min_length=1, max_length=255)
    product_id: str
    quantity: int = Field(default=1, ge=1)


class UpdateCartItemRequest(BaseModel):
    session_key: str = Field(min_length=1, max_length=255)
    line_id: str
    quantity: int = Field(ge=1)


class CartLineResponse(BaseModel):
    id: str
    product_id: str
    product_name: str | None = None
    quantity: int
    unit_price: Money
    subtotal: Money


class CartResponse(BaseModel):
    id: str | None = None
    session_key: str
    lines: list[CartLineResponse] = []
    total_items: int = 0
    total_amount: Money = Decimal("0.00")
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Checkout and orders
# ---------------------------------------------------------------------------
class CheckoutLineRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


class CheckoutRequestBody(BaseModel):
    """Contact details plus either explicit lines or a cart session key."""

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=254)
    phone: str | None = Field(default=None, max_length=30)
    lines: list[CheckoutLineRequest] | None = None
    session_key: str | None = None
    currency: str | None = Field(default=None, max_length=3)
    api_ref: str = Field(min_length=1, max_length=100)
    redirect_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "first_name": "Wanjiru",
                    "last_name": "Kamau",
                    "email": "wanjiru@example.com",
                    "phone": "254712345678",
                    "session_key": "sess-01",
                    "currency": "KES",
                    "api_ref": "ORDER-2024-0001",
                    "redirect_url": "https://shop.example.com/checkout/done",
                }
            ]
        }
    }


class CheckoutResponse(BaseModel):
    api_ref: str
    url: str
    checkout_id: str
    state: str
    amount: Money
    currency: str


class ConfirmPaymentRequest(BaseModel):
    api_ref: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=20)
    checkout_id: str | None = None
    tracking_id: str | None = None


class IntaSendWebhookPayload(BaseModel):
    """IntaSend collection event. Unknown provider fields are kept."""

    model_config = ConfigDict(extra="allow")

    api_ref: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=20)
    invoice_id: str | None = None
    checkout_id: str | None = None
    challenge: str | None = None


class StatusUpdateRequest(BaseModel):
    status: str = Field(min_length=1, max_length=20)


class OrderLineResponse(BaseModel):
    id: str
    product_id: str
    product_name: str
    unit_price: Money
    quantity: int
    subtotal: Money


class OrderResponse(BaseModel):
    id: str
    api_ref: str
    checkout_id: str | None = None
    tracking_id: str | None = None
    customer_id: str
    customer_name: str | None = None
    customer_email: str | None = None
    total_amount: Money
    currency: str
    payment_status: str
    inventory_committed: bool
    needs_review: bool
    lines: list[OrderLineResponse] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# View -> response conversions
# ---------------------------------------------------------------------------
@singledispatch
def to_response(view) -> BaseModel:
    raise TypeError(f"No response schema for {type(view).__name__}")


@to_response.register
def _(view: ProductView) -> ProductResponse:
    return ProductResponse(
        id=view.id,
        name=view.name,
        description=view.description,
        price=view.price,
        category=view.category,
        image_url=view.image_url,
        rating=view.rating,
        stock_quantity=view.stock_quantity,
        status=view.status,
        available=view.available,
        created_at=view.created_at,
    )


@to_response.register
def _(view: CategoryView) -> CategoryResponse:
    return CategoryResponse(
        id=view.id,
        name=view.name,
        description=view.description,
        icon=view.icon,
        is_active=view.is_active,
    )


@to_response.register
def _(view: CartLineView) -> CartLineResponse:
    return CartLineResponse(
        id=view.id,
        product_id=view.product_id,
        product_name=view.product_name,
        quantity=view.quantity,
        unit_price=view.unit_price,
        subtotal=view.subtotal,
    )


@to_response.register
def _(view: CartView) -> CartResponse:
    return CartResponse(
        id=view.id,
        session_key=view.session_key,
        lines=[to_response(line) for line in view.lines],
        total_items=view.total_items,
        total_amount=view.total_amount,
        updated_at=view.updated_at,
    )


@to_response.register
def _(view: InitiatedCheckout) -> CheckoutResponse:
    return CheckoutResponse(
        api_ref=view.api_ref,
        url=view.redirect_url,
        checkout_id=view.provider_session_id,
        state=view.state,
        amount=view.amount,
        currency=view.currency,
    )


@to_response.register
def _(view: OrderLineView) -> OrderLineResponse:
    return OrderLineResponse(
        id=view.id,
        product_id=view.product_id,
        product_name=view.product_name,
        unit_price=view.unit_price,
        quantity=view.quantity,
        subtotal=view.subtotal,
    )


@to_response.register
def _(view: OrderView) -> OrderResponse:
    return OrderResponse(
        id=view.id,
        api_ref=view.api_ref,
        checkout_id=view.checkout_id,
        tracking_id=view.tracking_id,
        customer_id=view.customer_id,
        customer_name=view.customer_name,
        customer_email=view.customer_email,
        total_amount=view.total_amount,
        currency=view.currency,
        payment_status=view.payment_status,
        inventory_committed=view.inventory_committed,
        needs_review=view.needs_review,
        lines=[to_response(line) for line in view.lines],
        created_at=view.created_at,
        updated_at=view.updated_at,
    )
