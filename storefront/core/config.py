# storefront/core/config.py
from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - SUPABASE_URL
      - SUPABASE_KEY (anon key)
      - DATABASE_URL (Supabase Postgres connection string)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - LOG_LEVEL / CORS_ORIGINS
      - TAX_RATE / FLAT_SHIPPING (checkout pricing)
      - CART_SESSION_HEADER (header carrying the anonymous cart session id)
      - PASSWORD_RESET_REDIRECT_URL (link target of password reset emails)
    """

    PROJECT_NAME: str = "Water Quality Storefront"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    # Supabase / DB config
    SUPABASE_URL: str
    SUPABASE_KEY: str
    DATABASE_URL: str

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Cart / checkout
    CART_SESSION_HEADER: str = "X-Cart-Session"
    CATALOG_PATH: str = "/test-kits"
    TAX_RATE: Decimal = Decimal("0.13")
    FLAT_SHIPPING: Decimal = Decimal("9.99")

    # Simulated card processor: this token is always declined
    PAYMENT_DECLINE_TOKEN: str = "tok_chargeDeclined"

    # Where the password reset email sends the user (frontend page)
    PASSWORD_RESET_REDIRECT_URL: str = "http://localhost:5173/reset-password"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
