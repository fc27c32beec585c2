# storefront/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order created from a checkout snapshot.

    Amounts are frozen at checkout time:
      - subtotal: Σ unit_price × quantity
      - tax_amount: subtotal × TAX_RATE (13%)
      - shipping_amount: flat rate
      - total_amount: subtotal + tax + shipping
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # pending | paid | payment_failed | shipped | delivered
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    subtotal: Decimal = Field(max_digits=10, decimal_places=2)
    tax_amount: Decimal = Field(max_digits=10, decimal_places=2)
    shipping_amount: Decimal = Field(max_digits=10, decimal_places=2)
    total_amount: Decimal = Field(
        max_digits=10,
        decimal_places=2,
        description="Final amount charged (tax and shipping included)",
    )

    shipping_name: str
    shipping_email: str
    shipping_phone: str | None = None
    shipping_address: str
    shipping_city: str
    shipping_state: str
    shipping_zip: str
    shipping_country: str = Field(default="Canada")
    shipping_method: str = Field(default="Standard")

    payment_reference: str | None = Field(
        default=None,
        description="Processor reference for the captured payment",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    test_kit_id: uuid.UUID = Field(
        foreign_key="test_kits.id",
        index=True,
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    # Pre-tax price captured when the kit was added to the cart
    unit_price: Decimal = Field(
        max_digits=10,
        decimal_places=2,
        description="Unit price at time of order (pre-tax)",
    )

    product_name: str | None = None
