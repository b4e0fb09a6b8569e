"""Exception handlers mapping the storefront error taxonomy onto HTTP.

400  malformed input and refused business rules (including a missing
     product or cart line named in the request)
404  orders, checkout sessions and categories that do not exist
502  the payment gateway failed during checkout initiation
500  anything else
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.shared.errors import CartItemNotFound, GatewayError, ProductNotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# Missing records the caller referred to in a request body
_BAD_REFERENCES = (ProductNotFound, CartItemNotFound)


def error_response(status_code: int, message: str, errors=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "errors": errors},
    )


def first_message(messages) -> str:
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, list) and value:
                return str(value[0])
            if value:
                return str(value)
    return str(messages) if messages else "Validation failed"


async def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    message = getattr(exc, "message", None) or first_message(exc.messages)
    return error_response(400, message, exc.messages)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = {".".join(str(part) for part in error["loc"][1:]) or "body": [error["msg"]] for error in exc.errors()}
    return error_response(400, first_message(errors), errors)


async def handle_not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    status_code = 400 if isinstance(exc, _BAD_REFERENCES) else 404
    return error_response(status_code, str(exc.args[0]) if exc.args else "Not found")


async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger.warning("gateway_error", path=request.url.path, error=str(exc), status_code=exc.status_code)
    return error_response(502, f"Payment gateway error: {exc}")


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    return error_response(500, "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(ObjectNotFoundError, handle_not_found)
    app.add_exception_handler(GatewayError, handle_gateway_error)
    app.add_exception_handler(Exception, handle_unexpected)
