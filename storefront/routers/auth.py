# storefront/routers/auth.py
from typing import Callable

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session
from supabase import Client

from storefront.core.auth import bearer_scheme, require_auth
from storefront.core.identity import read_session_id
from storefront.core.supabase_client import supabase_public, user_client_factory
from storefront.database import get_session
from storefront.routers.dependencies import build_cart_store
from storefront.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    PasswordUpdateRequest,
    SignupRequest,
    SignupResponse,
)
from storefront.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])

service = AuthService(build_cart_store)


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    request: Request,
    session: Session = Depends(get_session),
    client: Client = Depends(supabase_public),
):
    """
    Sign in with email + password.

    When the request carries `X-Cart-Session`, the anonymous cart is
    merged into the customer's cart and the session id is retired.
    """
    return service.login(session, client, payload, read_session_id(request))


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
)
def signup(
    payload: SignupRequest,
    request: Request,
    session: Session = Depends(get_session),
    client: Client = Depends(supabase_public),
):
    """
    Create an account (email + password, optional name and phone).

    If Supabase signs the user in right away, the anonymous cart from
    `X-Cart-Session` is merged just like on login.
    """
    return service.signup(session, client, payload, read_session_id(request))


@router.post("/password/reset", status_code=status.HTTP_202_ACCEPTED)
def request_password_reset(
    payload: PasswordResetRequest,
    client: Client = Depends(supabase_public),
) -> dict[str, str]:
    """
    Email a password reset link.

    - Public endpoint.
    """
    service.request_password_reset(client, payload)
    return {"message": "If the email is registered, a reset link is on its way"}


@router.post(
    "/password/update",
    dependencies=[Depends(require_auth)],
)
def update_password(
    payload: PasswordUpdateRequest,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    client_factory: Callable = Depends(user_client_factory),
) -> dict[str, str]:
    """
    Set a new password.

    Auth:
      - Bearer token of the account (the recovery token from the reset
        link works too).
    """
    service.update_password(client_factory, credentials.credentials, payload)
    return {"message": "Password updated successfully"}
