# storefront/schemas/cart.py
import uuid
from decimal import Decimal
from typing import Literal

from sqlmodel import SQLModel, Field

CartState = Literal["uninitialized", "loading", "ready", "mutating"]
OwnerKindName = Literal["session", "user"]


class CartItemCreate(SQLModel):
    """
    Payload for adding a test kit to the cart.
    """

    test_kit_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for replacing the quantity of a cart line.

    Values below 1 are accepted and ignored: removal goes through
    DELETE /cart/items/{line_id}.
    """

    quantity: int


class CartLineRead(SQLModel):
    """
    Read model for a single cart line, including line_total.
    """

    line_id: uuid.UUID
    test_kit_id: uuid.UUID
    display_name: str | None = None
    thumbnail_url: str | None = None
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class CartSummary(SQLModel):
    """
    Full cart view with totals.

    `total` is always recomputed from the lines; it is never read
    from storage.
    """

    owner_kind: OwnerKindName
    cart_id: uuid.UUID | None = None
    items: list[CartLineRead] = []
    total_quantity: int = 0
    total: Decimal = Decimal("0.00")
    state: CartState = "ready"
    preview_open: bool = False


class CartMergeResult(SQLModel):
    """
    Response of an explicit anonymous → authenticated cart merge.
    """

    retired_session_id: uuid.UUID | None
    merged_lines: int
    cart: CartSummary
