"""Customer aggregate, keyed by email."""

from datetime import UTC, datetime
from uuid import NAMESPACE_URL, uuid5

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront

_CUSTOMER_NAMESPACE = uuid5(NAMESPACE_URL, "storefront:customer")


def normalize_email(email: str) -> str:
    normalized = (email or "").strip().lower()
    if not normalized or "@" not in normalized:
        raise ValidationError({"email": ["A valid email address is required"]})
    return normalized


def customer_id_for(email: str) -> str:
    """Deterministic identity so concurrent registrations of one email converge."""
    return str(uuid5(_CUSTOMER_NAMESPACE, normalize_email(email)))


@storefront.event(part_of="Customer")
class CustomerRegistered:
    __version__ = 1

    customer_id = Identifier(required=True)
    email = String(required=True, max_length=254)
    registered_at = DateTime(required=True)


@storefront.aggregate
class Customer:
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    email = String(required=True, max_length=254, unique=True)
    phone = String(max_length=30)
    created_at = DateTime()

    @classmethod
    def register(cls, email, first_name=None, last_name=None, phone=None):
        email = normalize_email(email)
        now = datetime.now(UTC)
        customer = cls(
            id=customer_id_for(email),
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            created_at=now,
        )
        customer.raise_(CustomerRegistered(customer_id=str(customer.id), email=email, registered_at=now))
        return customer

    @property
    def full_name(self):
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@storefront.repository(part_of=Customer)
class CustomerRepository:
    def with_email(self, email: str) -> Customer | None:
        return self.query.filter(email=normalize_email(email)).all().first
