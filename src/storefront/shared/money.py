"""Fixed-point money helpers shared by the catalog, cart, checkout and orders."""

from decimal import ROUND_HALF_UP, Decimal

from protean.exceptions import ValidationError

CENTS = Decimal("0.01")

SUPPORTED_CURRENCIES = frozenset({"KES", "USD", "EUR", "GBP", "UGX", "TZS"})


def to_amount(value) -> Decimal:
    """Coerce a number to a two-place ``Decimal``."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def line_total(unit_price, quantity: int) -> Decimal:
    return to_amount(to_amount(unit_price) * quantity)


def normalize_currency(currency: str | None, default: str) -> str:
    code = (currency or default).strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValidationError({"currency": [f"Unsupported currency: {code}"]})
    return code
