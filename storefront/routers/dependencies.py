# storefront/routers/dependencies.py
from fastapi import Depends, Request
from sqlmodel import Session

from storefront.core.identity import OwnerRef, get_cart_owner, read_session_id
from storefront.database import get_session
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.test_kit_repo import TestKitRepository
from storefront.services.cart_store import CartStore

cart_repo = CartRepository()
test_kit_repo = TestKitRepository()


def build_cart_store(session: Session, owner: OwnerRef) -> CartStore:
    """Create a CartStore bound to `owner` with the shared repositories."""
    return CartStore(session, owner, cart_repo, test_kit_repo)


def get_cart_store(
    request: Request,
    owner: OwnerRef = Depends(get_cart_owner),
    session: Session = Depends(get_session),
) -> CartStore:
    """
    FastAPI dependency yielding a CartStore for the current cart owner
    (authenticated customer or anonymous session).

    Clients that sign in directly against Supabase keep sending their
    `X-Cart-Session` with the new bearer token. Any cart still keyed to
    that session is merged into the customer's cart before the request
    is served.
    """
    if not owner.is_anonymous:
        session_id = read_session_id(request)
        if session_id is not None:
            store = build_cart_store(session, OwnerRef.anonymous(session_id))
            store.merge_on_authentication(owner)
            return store

    return build_cart_store(session, owner)
