# storefront/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal["pending", "paid", "payment_failed", "shipped", "delivered"]


class ShippingDetails(SQLModel):
    """
    Where the kits are shipped. Prefilled by clients from the profile.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    email: EmailStr
    phone: str | None = None
    address: str
    city: str
    state: str
    zip_code: str
    country: str = "Canada"

    @field_validator("name", "address", "city", "state", "zip_code", "country")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class CheckoutRequest(SQLModel):
    """
    Payload for turning the current cart into a paid order.

    Backend derives:
      - user_id from token
      - line items, prices and totals from the cart snapshot
      - status from the payment outcome
    """

    model_config = ConfigDict(extra="forbid")

    shipping: ShippingDetails
    payment_token: str = Field(min_length=1)
    save_shipping_to_profile: bool = True


class CheckoutLineRead(SQLModel):
    test_kit_id: uuid.UUID
    name: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class CheckoutSummaryRead(SQLModel):
    """
    Priced snapshot of the cart as it would be submitted.
    """

    items: list[CheckoutLineRead]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    status: OrderStatus
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    shipping_name: str
    shipping_email: str
    shipping_phone: str | None
    shipping_address: str
    shipping_city: str
    shipping_state: str
    shipping_zip: str
    shipping_country: str
    shipping_method: str
    payment_reference: str | None
    created_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    test_kit_id: uuid.UUID
    product_name: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]
