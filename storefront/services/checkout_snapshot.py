# storefront/services/checkout_snapshot.py
import uuid
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from storefront.schemas.cart import CartSummary

CENT = Decimal("0.01")


@dataclass(frozen=True)
class SnapshotLine:
    test_kit_id: uuid.UUID
    name: str | None
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENT)


@dataclass(frozen=True)
class CheckoutSnapshot:
    """
    Cart contents frozen at the moment checkout begins.

    Later cart edits do not affect a snapshot that was already taken.
    """

    cart_id: uuid.UUID | None
    lines: tuple[SnapshotLine, ...]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal

    @property
    def is_empty(self) -> bool:
        return not self.lines


def freeze_cart(
    cart: CartSummary,
    tax_rate: Decimal,
    flat_shipping: Decimal,
) -> CheckoutSnapshot:
    """
    Price a cart view.

      subtotal = Σ unit_price × quantity
      tax      = subtotal × tax_rate, rounded half-up to the cent
      shipping = flat_shipping when subtotal > 0, else 0
      total    = subtotal + tax + shipping
    """
    lines = tuple(
        SnapshotLine(
            test_kit_id=item.test_kit_id,
            name=item.display_name,
            quantity=item.quantity,
            unit_price=item.unit_price,
        )
        for item in cart.items
    )
    subtotal = sum((line.line_total for line in lines), Decimal("0.00"))
    tax_amount = (subtotal * tax_rate).quantize(CENT, rounding=ROUND_HALF_UP)
    shipping_amount = flat_shipping if subtotal > 0 else Decimal("0.00")

    return CheckoutSnapshot(
        cart_id=cart.cart_id,
        lines=lines,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        shipping_amount=shipping_amount,
        total_amount=subtotal + tax_amount + shipping_amount,
    )
