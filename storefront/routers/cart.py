# storefront/routers/cart.py
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlmodel import Session

from storefront.core.auth import require_auth
from storefront.core.config import get_settings
from storefront.core.identity import OwnerRef, read_session_id
from storefront.database import get_session
from storefront.models.user import User
from storefront.routers.dependencies import build_cart_store, get_cart_store
from storefront.schemas.cart import (
    CartItemCreate,
    CartItemUpdate,
    CartMergeResult,
    CartSummary,
)
from storefront.services.cart_store import CartStore

settings = get_settings()

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartSummary)
def get_my_cart(store: CartStore = Depends(get_cart_store)):
    """
    Get the current owner's cart summary.

    Owner:
      - authenticated customer (Bearer token), or
      - anonymous shopper (`X-Cart-Session`; minted and returned in the
        response header when missing).
    """
    return store.fetch_cart()


@router.post("/items", response_model=CartSummary)
def add_to_cart(
    payload: CartItemCreate,
    store: CartStore = Depends(get_cart_store),
):
    """
    Add a test kit to the cart (adding again increments the line).

    Returns the refetched cart summary with `preview_open=true`.
    """
    return store.add_item(payload.test_kit_id, payload.quantity)


@router.patch("/items/{line_id}", response_model=CartSummary)
def update_cart_item(
    line_id: uuid.UUID,
    payload: CartItemUpdate,
    store: CartStore = Depends(get_cart_store),
):
    """
    Replace the quantity of a cart line.

    Quantities below 1 and unknown lines leave the cart unchanged.
    """
    return store.update_quantity(line_id, payload.quantity)


@router.delete("/items/{line_id}", response_model=CartSummary)
def remove_cart_item(
    line_id: uuid.UUID,
    store: CartStore = Depends(get_cart_store),
):
    """
    Remove a line from the cart.

    Returns the updated cart summary.
    """
    return store.remove_item(line_id)


@router.delete("", response_model=CartSummary)
def clear_cart(store: CartStore = Depends(get_cart_store)):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    return store.clear()


@router.post("/merge", response_model=CartMergeResult)
def merge_anonymous_cart(
    request: Request,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Move the anonymous cart identified by `X-Cart-Session` into the
    authenticated customer's cart.

    Clients should drop their stored session id afterwards.
    """
    session_id = read_session_id(request)
    if session_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing {settings.CART_SESSION_HEADER} header",
        )

    store = build_cart_store(session, OwnerRef.anonymous(session_id))
    merged = store.merge_on_authentication(OwnerRef.authenticated(current_user.id))
    return CartMergeResult(
        retired_session_id=session_id,
        merged_lines=merged,
        cart=store.fetch_cart(),
    )
