# storefront/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent customer profile.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    This table is *not* responsible for password hashes. Supabase Auth
    stores the password in its own schema. We only mirror identity,
    contact details and the default shipping address used to prefill
    checkout.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase auth.users",
    )

    full_name: str = Field(
        max_length=100,
        description="Customer display name; first part of email by default",
    )

    phone: str | None = Field(default=None, max_length=30)

    shipping_address: str | None = None
    shipping_city: str | None = None
    shipping_state: str | None = None
    shipping_zip: str | None = None
    shipping_country: str | None = Field(default="Canada")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
