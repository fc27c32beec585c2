# storefront/core/supabase_client.py
from functools import lru_cache
from typing import Callable

from supabase import create_client, Client

from storefront.core.config import get_settings

settings = get_settings()


@lru_cache
def supabase_public() -> Client:
    """
    Create a Supabase client with the anon/public key.

    Use cases:
      - password sign-in on behalf of the storefront (POST /auth/login)
      - reading public buckets (test kit images)

    Note: This client still respects RLS.

    Also used directly as a FastAPI dependency so tests can swap it
    through `app.dependency_overrides`.
    """
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def supabase_for_session(access_token: str, refresh_token: str) -> Client:
    """
    Create a fresh client acting as one signed-in user.

    Never cached: the session is per user, while `supabase_public()` is
    shared by every request.
    """
    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    client.auth.set_session(access_token, refresh_token)
    return client


def user_client_factory() -> Callable[[str, str], Client]:
    """FastAPI dependency handing out `supabase_for_session`; tests override it."""
    return supabase_for_session
