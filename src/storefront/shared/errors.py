"""Storefront error taxonomy.

Every error here extends a Protean exception so that framework machinery
treats it natively: business-rule violations carry field messages like any
``ValidationError``, missing records are ``ObjectNotFoundError``, and a
``ConflictRetry`` raised inside a command handler is retried by Protean's
version-conflict retry in a fresh unit of work.

- ``ValidationError`` (Protean's own): malformed input
- ``NotFound``: product, cart line, order, checkout or category absent
- ``BusinessRuleViolation``: stock and catalog rules
- ``ExternalServiceError``: the payment gateway failed
- ``ConflictRetry``: internal uniqueness race, never surfaced to callers
"""

from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError


class BusinessRuleViolation(ValidationError):
    """A well-formed request that the current state of the store refuses."""

    field = "non_field_errors"

    def __init__(self, message: str, field: str | None = None, **kwargs) -> None:
        self.message = message
        super().__init__({field or self.field: [message]}, **kwargs)


class InsufficientStock(BusinessRuleViolation):
    field = "quantity"

    def __init__(self, product_id: str, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(f"Insufficient stock: {available} available, {requested} requested")


class ProductUnavailable(BusinessRuleViolation):
    field = "product_id"

    def __init__(self, product_id: str, reason: str = "Product is not available") -> None:
        self.product_id = product_id
        super().__init__(reason)


class OutOfStock(BusinessRuleViolation):
    field = "product_id"

    def __init__(self, product_id: str) -> None:
        self.product_id = product_id
        super().__init__("Product is out of stock")


class DuplicateCategory(BusinessRuleViolation):
    field = "name"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Category '{name}' already exists")


class NotFound(ObjectNotFoundError):
    """Base for records that do not exist."""

    kind = "Record"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"{self.kind} not found: {identifier}")


class ProductNotFound(NotFound):
    kind = "Product"


class CartItemNotFound(NotFound):
    kind = "Cart item"


class OrderNotFound(NotFound):
    kind = "Order"


class CheckoutNotFound(NotFound):
    kind = "Checkout session"


class CategoryNotFound(NotFound):
    kind = "Category"


class ExternalServiceError(Exception):
    """A collaborator outside the storefront failed."""


class GatewayError(ExternalServiceError):
    """The payment gateway was unreachable, timed out, or rejected the request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConflictRetry(ExpectedVersionError):
    """Another writer claimed a unique key first; re-run the unit of work."""
