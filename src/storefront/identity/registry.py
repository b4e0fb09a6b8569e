"""Customer registry: lookup-or-create by email.

Lookup by email is authoritative. On a miss the customer is created inside
the caller's unit of work, so the returned aggregate is the row that will be
committed. When a concurrent writer claims the email first, the conflict is
resolved here and never reaches the caller:

* seen at write time (the unique email check fails): re-read and return
  the existing row, or re-run the unit of work if it is not yet visible;
* seen at commit (a relational unique index rejects the insert): the
  handler's retry re-runs the unit of work, which then finds the row.
"""

from protean import handle
from protean.exceptions import TransactionError, ValidationError
from protean.fields import String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.identity.customer import Customer, normalize_email
from storefront.shared.errors import ConflictRetry
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def find_or_create(first_name, last_name, email, phone) -> Customer:
    """Return the customer for ``email``, creating one on first appearance.

    Must run inside a unit of work (any command handler provides one).
    """
    email = normalize_email(email)
    repo = current_domain.repository_for(Customer)

    existing = repo.with_email(email)
    if existing is not None:
        return existing

    customer = Customer.register(email=email, first_name=first_name, last_name=last_name, phone=phone)
    try:
        repo.add(customer)
    except ValidationError as exc:
        if not isinstance(exc.messages, dict) or "email" not in exc.messages:
            raise
        existing = repo.with_email(email)
        logger.info("customer_registration_conflict", email=email, resolved=existing is not None)
        if existing is None:
            raise ConflictRetry(f"Customer {email} is being registered concurrently") from exc
        return existing

    logger.info("customer_registered", customer_id=str(customer.id), email=email)
    return customer


@storefront.command(part_of="Customer")
class RegisterCustomer:
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    email = String(required=True, max_length=254)
    phone = String(max_length=30)


@storefront.command_handler(part_of=Customer, retries=3, backoff="fixed", retry_exceptions=[TransactionError])
class CustomerRegistryHandler:
    @handle(RegisterCustomer)
    def register_customer(self, command):
        customer = find_or_create(command.first_name, command.last_name, command.email, command.phone)
        return str(customer.id)


def register_customer(first_name, last_name, email, phone) -> str:
    """Standalone entry point; returns the durable customer id."""
    return current_domain.process(
        RegisterCustomer(first_name=first_name, last_name=last_name, email=email, phone=phone),
        asynchronous=False,
    )
