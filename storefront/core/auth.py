# storefront/core/auth.py
import uuid
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support anonymous shoppers.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Args:
        token: raw JWT from the Authorization header.

    Returns:
        Decoded JWT claims.

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def provision_user(
    session: Session,
    user_id: uuid.UUID,
    email: str,
    full_name: str | None = None,
) -> User:
    """
    Return the profile row for a Supabase user, creating a minimal one
    on first sight.
    """
    user = session.get(User, user_id)
    if user is None:
        user = User(
            id=user_id,
            email=email,
            full_name=full_name or _default_name_from_email(email),
        )
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def user_from_token(session: Session, token: str) -> User:
    """
    Resolve (and auto-provision) the profile behind a Supabase JWT.

    Raises:
        HTTPException(401): if token is invalid or missing required claims.
    """
    payload = decode_access_token(token)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    # Supabase provides sub as a string; enforce UUID
    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    return provision_user(session, sub_uuid, email)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a Supabase JWT.

    Flow:
      1. If no Authorization header => anonymous => return None.
      2. Decode JWT => extract 'sub' (auth user id) and 'email'.
      3. Find or auto-provision the profile in public.users.

    Returns:
        User instance if authenticated, else None for anonymous shoppers.

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    if credentials is None:
        return None

    return user_from_token(session, credentials.credentials)


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    If attached to a route, anonymous shoppers (missing JWT)
    will be rejected with 401.

    Returns:
        The authenticated User.

    Raises:
        HTTPException(401): if user is None.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user
