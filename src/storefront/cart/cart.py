"""Cart aggregate: one mutable cart per browser session.

The cart references products by identity and captures the unit price at the
moment a line was last added to. It never holds stock; availability checks
made here are advisory and are repeated against the ledger when an order is
reconciled.
"""

from datetime import UTC, datetime
from uuid import NAMESPACE_URL, uuid5

from protean.exceptions import ValidationError
from protean.fields import DateTime, Decimal, HasMany, Identifier, Integer, String

from storefront.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from storefront.domain import storefront
from storefront.shared.errors import CartItemNotFound
from storefront.shared.money import line_total, to_amount

_CART_NAMESPACE = uuid5(NAMESPACE_URL, "storefront:cart")


def cart_id_for(session_key: str) -> str:
    """Deterministic cart identity, so racing first-adds land on one cart."""
    return str(uuid5(_CART_NAMESPACE, session_key))


@storefront.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Decimal(required=True, min_value=0, precision=12, scale=2)
    added_at = DateTime()

    @property
    def subtotal(self):
        return line_total(self.unit_price, self.quantity)


@storefront.aggregate
class Cart:
    session_key = String(required=True, max_length=255, unique=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, session_key):
        if not session_key or not session_key.strip():
            raise ValidationError({"session_key": ["Session key is required"]})

        now = datetime.now(UTC)
        return cls(
            id=cart_id_for(session_key),
            session_key=session_key,
            created_at=now,
            updated_at=now,
        )

    def line_for_product(self, product_id):
        return next((line for line in self.lines if str(line.product_id) == str(product_id)), None)

    def line(self, line_id):
        line = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if line is None:
            raise CartItemNotFound(str(line_id))
        return line

    def quantity_after_adding(self, product_id, quantity):
        existing = self.line_for_product(product_id)
        return quantity + (existing.quantity if existing else 0)

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price):
        """Add a product, merging into its existing line at the current price."""
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        price = to_amount(unit_price)
        existing = self.line_for_product(product_id)

        if existing:
            existing.quantity += quantity
            existing.unit_price = price
            line = existing
        else:
            line = CartLine(product_id=product_id, quantity=quantity, unit_price=price, added_at=now)
            self.add_lines(line)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                session_key=self.session_key,
                line_id=str(line.id),
                product_id=str(product_id),
                quantity=line.quantity,
                unit_price=price,
            )
        )
        return line

    def update_quantity(self, line_id, quantity):
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        line = self.line(line_id)
        previous = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line.id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_line(self, line_id):
        line = self.line(line_id)
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def clear(self):
        removed = len(self.lines)
        for line in list(self.lines):
            self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), session_key=self.session_key, lines_removed=removed))

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def total(self):
        return to_amount(sum((line.subtotal for line in self.lines), start=to_amount(0)))

    @property
    def line_count(self):
        return len(self.lines)
