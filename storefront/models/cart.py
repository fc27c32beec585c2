# storefront/models/cart.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Cart(SQLModel, table=True):
    """
    Shopping cart record.

    Owned by exactly one of:
      - session_id: anonymous shopper (id kept by the client)
      - user_id: authenticated customer

    Both columns are unique, so an owner has at most one cart.
    The cart total is never stored; it is derived from the lines.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    session_id: uuid.UUID | None = Field(
        default=None,
        unique=True,
        index=True,
    )

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        unique=True,
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartItem(SQLModel, table=True):
    """
    Line inside a cart.
    One cart cannot have 2 rows for the same test kit.
    """

    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "test_kit_id", name="uq_cart_items_cart_kit"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    test_kit_id: uuid.UUID = Field(
        foreign_key="test_kits.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    unit_price: Decimal = Field(
        max_digits=10,
        decimal_places=2,
        description="Price when added to cart",
    )

    display_name: str | None = None
    thumbnail_url: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
