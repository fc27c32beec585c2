# storefront/schemas/auth.py
import uuid

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

from storefront.schemas.cart import CartSummary


class LoginRequest(SQLModel):
    """
    Email/password sign-in, delegated to Supabase Auth.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)


class LoginResponse(SQLModel):
    """
    Tokens issued by Supabase plus the customer's cart after the
    anonymous cart (if any) has been merged in.

    Clients should forget `retired_session_id` once they receive it.
    """

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    user_id: uuid.UUID
    retired_session_id: uuid.UUID | None = None
    cart: CartSummary


class SignupRequest(SQLModel):
    """
    Account creation, delegated to Supabase Auth.

    `full_name` and `phone` are sent as user metadata and copied to the
    profile row.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=8)
    full_name: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=30)

    @field_validator("full_name", "phone")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class SignupResponse(SQLModel):
    """
    When the Supabase project requires email confirmation no session is
    issued: tokens are empty, `confirmation_required` is true and the
    anonymous cart stays with its session until the first login.
    """

    user_id: uuid.UUID
    confirmation_required: bool
    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "bearer"
    retired_session_id: uuid.UUID | None = None
    cart: CartSummary | None = None


class PasswordResetRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class PasswordUpdateRequest(SQLModel):
    """
    New password for the account behind the bearer token (e.g. the
    recovery token from the reset email link).
    """

    model_config = ConfigDict(extra="forbid")

    password: str = Field(min_length=8)
    refresh_token: str = Field(min_length=1)
