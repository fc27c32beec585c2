# storefront/core/identity.py
"""
Who owns the cart for the current request.

A cart owner is either:
  - an anonymous shopper, identified by a session id the client keeps
    (sent back on every request in the `X-Cart-Session` header), or
  - an authenticated customer, identified by the Supabase user id.

Login/logout transitions are announced on an `IdentityEvents` channel so
that cart stores can re-key or refetch.
"""
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from fastapi import Depends, HTTPException, Request, Response
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session

from storefront.core.auth import bearer_scheme, user_from_token
from storefront.core.config import get_settings
from storefront.database import get_session

settings = get_settings()
logger = logging.getLogger(__name__)


class OwnerKind(str, Enum):
    SESSION = "session"
    USER = "user"


@dataclass(frozen=True)
class OwnerRef:
    kind: OwnerKind
    id: uuid.UUID

    @classmethod
    def anonymous(cls, session_id: uuid.UUID) -> "OwnerRef":
        return cls(OwnerKind.SESSION, session_id)

    @classmethod
    def authenticated(cls, user_id: uuid.UUID) -> "OwnerRef":
        return cls(OwnerKind.USER, user_id)

    @property
    def is_anonymous(self) -> bool:
        return self.kind is OwnerKind.SESSION


@dataclass(frozen=True)
class IdentityChange:
    previous: OwnerRef
    current: OwnerRef


IdentityListener = Callable[[IdentityChange], None]


class IdentityEvents:
    """
    Minimal publish/subscribe channel for identity transitions.

    Listeners are called synchronously, in subscription order.
    """

    def __init__(self) -> None:
        self._listeners: list[IdentityListener] = []

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, change: IdentityChange) -> None:
        logger.info(
            "Identity change: %s:%s -> %s:%s",
            change.previous.kind.value,
            change.previous.id,
            change.current.kind.value,
            change.current.id,
        )
        for listener in list(self._listeners):
            listener(change)


def parse_session_id(raw: str | None) -> uuid.UUID | None:
    """Parse the anonymous cart session header; None when absent or malformed."""
    if not raw:
        return None
    try:
        return uuid.UUID(raw.strip())
    except ValueError:
        logger.warning("Ignoring malformed cart session id %r", raw)
        return None


def read_session_id(request: Request) -> uuid.UUID | None:
    return parse_session_id(request.headers.get(settings.CART_SESSION_HEADER))


def get_cart_owner(
    request: Request,
    response: Response,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> OwnerRef:
    """
    Resolve the cart owner for this request.

    Flow:
      1. Valid bearer token => authenticated owner (profile auto-provisioned).
      2. Else `X-Cart-Session` header => anonymous owner.
      3. Else mint a new anonymous session id.

    Anonymous owners always get their session id echoed back in the
    response header so the client can persist it.

    A bad or expired token is never fatal here: the request simply
    continues as anonymous.
    """
    if credentials is not None:
        try:
            user = user_from_token(session, credentials.credentials)
            return OwnerRef.authenticated(user.id)
        except HTTPException as exc:
            logger.warning("Cart owner falls back to anonymous: %s", exc.detail)

    session_id = read_session_id(request)
    if session_id is None:
        session_id = uuid.uuid4()
        logger.debug("Issued new cart session %s", session_id)

    response.headers[settings.CART_SESSION_HEADER] = str(session_id)
    return OwnerRef.anonymous(session_id)
