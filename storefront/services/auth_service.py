# storefront/services/auth_service.py
import logging
import uuid
from typing import Callable

from fastapi import HTTPException, status
from sqlmodel import Session
from supabase import AuthError, Client

from storefront.core.auth import provision_user
from storefront.core.config import get_settings
from storefront.core.identity import IdentityChange, IdentityEvents, OwnerRef
from storefront.models.user import User
from storefront.schemas.auth import (
    LoginRequest,
    LoginResponse,
    PasswordResetRequest,
    PasswordUpdateRequest,
    SignupRequest,
    SignupResponse,
)
from storefront.schemas.cart import CartSummary
from storefront.services.cart_store import CartStore

settings = get_settings()
logger = logging.getLogger(__name__)


class AuthService:
    """
    Account flows on behalf of the storefront.

    Supabase Auth owns credentials and issues the tokens. On a
    successful sign-in or sign-up:
      - the profile row is provisioned
      - the anonymous cart (if the caller sent a session id) is handed
        over to the customer through an IdentityChange
    """

    def __init__(self, store_factory: Callable[[Session, OwnerRef], CartStore]):
        self.store_factory = store_factory

    def _claim_cart(
        self,
        session: Session,
        user: User,
        session_id: uuid.UUID | None,
    ) -> CartSummary:
        """Publish anonymous -> user for the caller's cart and return the result."""
        user_owner = OwnerRef.authenticated(user.id)
        if session_id is None:
            return self.store_factory(session, user_owner).fetch_cart()

        store = self.store_factory(session, OwnerRef.anonymous(session_id))
        events = IdentityEvents()
        detach = store.attach(events)
        try:
            events.publish(IdentityChange(previous=store.owner, current=user_owner))
        finally:
            detach()
        return store.cart

    def login(
        self,
        session: Session,
        client: Client,
        payload: LoginRequest,
        session_id: uuid.UUID | None,
    ) -> LoginResponse:
        try:
            auth = client.auth.sign_in_with_password(
                {"email": payload.email, "password": payload.password}
            )
        except AuthError as exc:
            logger.info("Sign-in rejected for %s: %s", payload.email, exc)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            ) from exc

        if auth.session is None or auth.user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )

        user = provision_user(
            session,
            uuid.UUID(str(auth.user.id)),
            auth.user.email or payload.email,
        )
        cart = self._claim_cart(session, user, session_id)

        logger.info("✅ User %s signed in", user.id)
        return LoginResponse(
            access_token=auth.session.access_token,
            refresh_token=auth.session.refresh_token,
            user_id=user.id,
            retired_session_id=session_id,
            cart=cart,
        )

    def signup(
        self,
        session: Session,
        client: Client,
        payload: SignupRequest,
        session_id: uuid.UUID | None,
    ) -> SignupResponse:
        """
        Create the Supabase account and its profile row.

        - Supabase rejection (e.g. already registered, weak password) => 400.
        - No session issued (email confirmation pending) => no cart merge.
        """
        metadata = {
            key: value
            for key, value in (("full_name", payload.full_name), ("phone", payload.phone))
            if value
        }
        try:
            auth = client.auth.sign_up(
                {
                    "email": payload.email,
                    "password": payload.password,
                    "options": {"data": metadata},
                }
            )
        except AuthError as exc:
            logger.info("Sign-up rejected for %s: %s", payload.email, exc)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=getattr(exc, "message", None) or "Could not create account",
            ) from exc

        if auth.user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Could not create account",
            )

        user = provision_user(
            session,
            uuid.UUID(str(auth.user.id)),
            auth.user.email or payload.email,
            full_name=payload.full_name,
        )
        if payload.phone and not user.phone:
            user.phone = payload.phone
            session.add(user)
            session.commit()
            session.refresh(user)

        if auth.session is None:
            logger.info("Account %s created, waiting for email confirmation", user.id)
            return SignupResponse(user_id=user.id, confirmation_required=True)

        cart = self._claim_cart(session, user, session_id)
        logger.info("✅ Account %s created and signed in", user.id)
        return SignupResponse(
            user_id=user.id,
            confirmation_required=False,
            access_token=auth.session.access_token,
            refresh_token=auth.session.refresh_token,
            retired_session_id=session_id,
            cart=cart,
        )

    def request_password_reset(
        self,
        client: Client,
        payload: PasswordResetRequest,
    ) -> None:
        """Ask Supabase to email a reset link pointing at the reset page."""
        try:
            client.auth.reset_password_for_email(
                payload.email,
                {"redirect_to": settings.PASSWORD_RESET_REDIRECT_URL},
            )
        except AuthError as exc:
            logger.warning("Password reset request failed for %s: %s", payload.email, exc)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Failed to send password reset email. Please try again.",
            ) from exc

    def update_password(
        self,
        client_factory: Callable[[str, str], Client],
        access_token: str,
        payload: PasswordUpdateRequest,
    ) -> None:
        """
        Set a new password for the user owning `access_token`.

        The change runs on a client bound to that user's session.
        """
        try:
            client = client_factory(access_token, payload.refresh_token)
            client.auth.update_user({"password": payload.password})
        except AuthError as exc:
            logger.warning("Password update rejected: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Failed to reset your password. Please try again.",
            ) from exc
